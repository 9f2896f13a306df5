"""Prompt collection persisted as a single JSON blob.

Every mutator reads the whole collection, applies one change and writes the
whole collection back. A target id that does not exist is a no-op.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from .errors import PromptLibError
from .metadata import estimate_tokens, track_model, update_timestamps
from .models import (
    MAX_NOTE_LENGTH,
    MAX_RATING,
    Note,
    Prompt,
    generate_id,
    is_token_count,
    is_valid_rating,
)
from .storage import PROMPTS_KEY

logger = logging.getLogger(__name__)

UNKNOWN_MODEL = "Unknown Model"


def migrate_record(raw: dict) -> dict:
    """Bring a stored record up to the current shape.

    Fills in rating, favorite flag and notes, and synthesizes metadata for
    records saved before it existed. Ratings outside 0-5 and non-integer
    token bounds are reset to 0. A metadata failure leaves the record
    without metadata instead of failing the load.
    """
    migrated = dict(raw)
    rating = raw.get("rating", 0)
    if not is_valid_rating(rating):
        logger.warning("Resetting invalid rating %r on prompt %r", rating, raw.get("id"))
        rating = 0
    migrated["rating"] = rating
    migrated["isFavorite"] = raw.get("isFavorite", False)
    migrated["notes"] = raw.get("notes", [])

    metadata = migrated.get("metadata")
    if isinstance(metadata, dict) and isinstance(metadata.get("tokenEstimate"), dict):
        estimate = dict(metadata["tokenEstimate"])
        for bound in ("min", "max"):
            if not is_token_count(estimate.get(bound)):
                estimate[bound] = 0
        migrated["metadata"] = {**metadata, "tokenEstimate": estimate}

    if not migrated.get("metadata"):
        try:
            metadata = track_model(UNKNOWN_MODEL, migrated.get("content") or "", False)
            created_at = migrated.get("createdAt")
            if created_at:
                metadata.created_at = created_at
                metadata.updated_at = created_at
            migrated["metadata"] = metadata.to_dict()
        except PromptLibError as e:
            logger.warning(
                "Error migrating prompt metadata for %r: %s", raw.get("id"), e.message
            )
            migrated.pop("metadata", None)

    return migrated


def same_id(a: Any, b: Any) -> bool:
    """Ids are opaque; a CLI argument "17" addresses the stored id 17."""
    return a == b or (a is not None and b is not None and str(a) == str(b))


def _valid_note(content: str) -> bool:
    return bool(content and content.strip()) and len(content) <= MAX_NOTE_LENGTH


class PromptLibrary:
    def __init__(self, store):
        self.store = store

    # Raw blob access

    def load_raw(self) -> list[dict]:
        blob = self.store.get(PROMPTS_KEY)
        if not blob:
            return []
        try:
            records = json.loads(blob)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PromptLibError.storage(f"stored prompts are not valid JSON: {e}") from e
        if not isinstance(records, list):
            raise PromptLibError.storage("stored prompts are not a list")
        return records

    def save_raw(self, records: list[dict]) -> None:
        self.store.set(PROMPTS_KEY, json.dumps(records).encode("utf-8"))

    def load_records(self) -> list[dict]:
        """Stored records in storage order, migrated to the current shape."""
        records = []
        for index, raw in enumerate(self.load_raw()):
            if not isinstance(raw, dict):
                logger.warning(
                    "Dropping stored prompt at index %d: not an object (%r)", index, raw
                )
                continue
            records.append(migrate_record(raw))
        return records

    # Reads

    def list_prompts(self) -> list[Prompt]:
        return [Prompt.from_dict(r) for r in self.load_records()]

    def get_prompt(self, prompt_id: Any) -> Prompt | None:
        for prompt in self.list_prompts():
            if same_id(prompt.id, prompt_id):
                return prompt
        return None

    # Writes

    def replace_all(self, prompts: list[Prompt]) -> None:
        self.save_raw([p.to_dict() for p in prompts])

    def _mutate(
        self, prompt_id: Any, change: Callable[[Prompt], bool | None]
    ) -> Prompt | None:
        prompts = self.list_prompts()
        for prompt in prompts:
            if same_id(prompt.id, prompt_id):
                if change(prompt) is False:
                    return None
                self.replace_all(prompts)
                return prompt
        return None

    def create_prompt(
        self,
        title: str,
        model: str,
        content: str,
        is_code: bool = False,
    ) -> Prompt | None:
        title = (title or "").strip()
        model = (model or "").strip()
        content = (content or "").strip()
        if not title or not model or not content:
            return None

        prompts = self.list_prompts()
        metadata = track_model(model, content, is_code)
        prompt = Prompt(
            id=generate_id(p.id for p in prompts),
            title=title,
            content=content,
            created_at=metadata.created_at,
            metadata=metadata,
        )
        prompts.append(prompt)
        self.replace_all(prompts)
        logger.info("Saved prompt %s (%s)", prompt.id, prompt.title)
        return prompt

    def update_prompt(
        self,
        prompt_id: Any,
        title: str | None = None,
        content: str | None = None,
        is_code: bool = False,
    ) -> Prompt | None:
        """Edit title and/or content, refreshing the metadata timestamps."""
        title = title.strip() if title is not None else None
        content = content.strip() if content is not None else None
        if title == "" or content == "":
            return None

        def change(prompt: Prompt) -> None:
            if title is not None:
                prompt.title = title
            if content is not None:
                prompt.content = content
            if prompt.metadata is None:
                prompt.metadata = track_model(UNKNOWN_MODEL, prompt.content, is_code)
                return
            if content is not None:
                prompt.metadata.token_estimate = estimate_tokens(prompt.content, is_code)
            prompt.metadata = update_timestamps(prompt.metadata)

        return self._mutate(prompt_id, change)

    def delete_prompt(self, prompt_id: Any) -> Prompt | None:
        prompts = self.list_prompts()
        kept = [p for p in prompts if not same_id(p.id, prompt_id)]
        removed = next((p for p in prompts if same_id(p.id, prompt_id)), None)
        if removed is not None:
            self.replace_all(kept)
        return removed

    def set_rating(self, prompt_id: Any, rating: int) -> Prompt | None:
        """Set a rating; setting the current rating again clears it to 0."""
        if not is_valid_rating(rating):
            raise PromptLibError.validation(
                f"Rating must be an integer between 0 and {MAX_RATING}, got {rating!r}"
            )

        def change(prompt: Prompt) -> None:
            prompt.rating = 0 if prompt.rating == rating else rating

        return self._mutate(prompt_id, change)

    def toggle_favorite(self, prompt_id: Any) -> Prompt | None:
        def change(prompt: Prompt) -> None:
            prompt.is_favorite = not prompt.is_favorite

        return self._mutate(prompt_id, change)

    def add_note(self, prompt_id: Any, content: str) -> Note | None:
        if not _valid_note(content):
            return None
        added: list[Note] = []

        def change(prompt: Prompt) -> None:
            note = Note(content=content, id=generate_id(n.id for n in prompt.notes))
            prompt.notes.append(note)
            added.append(note)

        self._mutate(prompt_id, change)
        return added[0] if added else None

    def edit_note(self, prompt_id: Any, note_id: Any, content: str) -> Note | None:
        if not _valid_note(content):
            return None
        edited: list[Note] = []

        def change(prompt: Prompt) -> bool:
            for note in prompt.notes:
                if same_id(note.id, note_id):
                    note.content = content
                    edited.append(note)
                    return True
            return False

        self._mutate(prompt_id, change)
        return edited[0] if edited else None

    def delete_note(self, prompt_id: Any, note_id: Any) -> Prompt | None:
        def change(prompt: Prompt) -> bool:
            kept = [n for n in prompt.notes if not same_id(n.id, note_id)]
            if len(kept) == len(prompt.notes):
                return False
            prompt.notes = kept
            return True

        return self._mutate(prompt_id, change)

