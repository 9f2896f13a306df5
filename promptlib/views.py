"""Read-time filtering and ordering of the prompt collection."""

from __future__ import annotations

from enum import Enum

from .models import Prompt, parse_timestamp

TOP_RATED_MIN = 4


class ViewMode(Enum):
    ALL = "all"
    FAVORITES = "favorites"
    TOP_RATED = "toprated"


EMPTY_MESSAGES = {
    ViewMode.ALL: "No prompts saved yet. Create your first prompt!",
    ViewMode.FAVORITES: "No favorite prompts yet. Mark a prompt as favorite to see it here!",
    ViewMode.TOP_RATED: "No top-rated prompts yet. Rate your prompts with 4 or 5 stars to see them here!",
}


def filter_prompts(prompts: list[Prompt], mode: ViewMode) -> list[Prompt]:
    if mode is ViewMode.FAVORITES:
        return [p for p in prompts if p.is_favorite]
    if mode is ViewMode.TOP_RATED:
        return [p for p in prompts if (p.rating or 0) >= TOP_RATED_MIN]
    return list(prompts)


def effective_created_at(prompt: Prompt) -> float:
    """Epoch seconds of metadata.created_at, else created_at, else 0."""
    candidates = (prompt.metadata.created_at if prompt.metadata else None, prompt.created_at)
    for value in candidates:
        if not value:
            continue
        try:
            return parse_timestamp(value).timestamp()
        except (TypeError, ValueError):
            continue
    return 0.0


def view(prompts: list[Prompt], mode: ViewMode = ViewMode.ALL) -> list[Prompt]:
    """Filter by mode, then order newest first. The input list is not touched."""
    return sorted(filter_prompts(prompts, mode), key=effective_created_at, reverse=True)


def empty_message(mode: ViewMode) -> str:
    return EMPTY_MESSAGES[mode]
