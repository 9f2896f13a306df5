"""Model tagging and token-size estimation for prompts."""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime
from fractions import Fraction

from .errors import PromptLibError
from .models import (
    MAX_MODEL_NAME_LENGTH,
    Metadata,
    TokenEstimate,
    format_timestamp,
    parse_timestamp,
    utcnow,
)

WORD_FACTOR = 0.75  # tokens per word, lower bound
CHAR_FACTOR = 0.25  # tokens per character, upper bound
CODE_MULTIPLIER = Fraction(13, 10)

HIGH_CONFIDENCE_BELOW = 1000
MEDIUM_CONFIDENCE_UP_TO = 5000


def estimate_tokens(text: str, is_code: bool = False) -> TokenEstimate:
    """Estimate a token range for text.

    The lower bound comes from the word count, the upper bound from the
    character count. Code-like text packs more tokens, so both bounds are
    scaled by CODE_MULTIPLIER. Confidence drops as the midpoint grows.
    """
    if not text or not isinstance(text, str):
        return TokenEstimate(min=0, max=0, confidence="high")

    # A whitespace-only string still counts as one (empty) word.
    word_count = len(text.split()) or 1
    char_count = len(text)

    min_tokens = math.ceil(WORD_FACTOR * word_count)
    max_tokens = math.ceil(CHAR_FACTOR * char_count)

    if is_code:
        min_tokens = math.ceil(min_tokens * CODE_MULTIPLIER)
        max_tokens = math.ceil(max_tokens * CODE_MULTIPLIER)

    # Short, wordy text can push the word bound past the character bound.
    max_tokens = max(max_tokens, min_tokens)

    average = (min_tokens + max_tokens) / 2
    if average < HIGH_CONFIDENCE_BELOW:
        confidence = "high"
    elif average <= MEDIUM_CONFIDENCE_UP_TO:
        confidence = "medium"
    else:
        confidence = "low"

    return TokenEstimate(min=min_tokens, max=max_tokens, confidence=confidence)


def validate_model_name(model_name: str) -> None:
    if not model_name or not isinstance(model_name, str):
        raise PromptLibError.validation("Model name must be a non-empty string")
    if not model_name.strip():
        raise PromptLibError.validation("Model name cannot be empty or only whitespace")
    if len(model_name) > MAX_MODEL_NAME_LENGTH:
        raise PromptLibError.validation(
            f"Model name cannot exceed {MAX_MODEL_NAME_LENGTH} characters"
        )


def track_model(
    model_name: str,
    content: str,
    is_code: bool = False,
    now: datetime | None = None,
) -> Metadata:
    """Build fresh metadata for a prompt written for ``model_name``."""
    try:
        validate_model_name(model_name)
        if not content or not isinstance(content, str):
            raise PromptLibError.validation("Content must be a non-empty string")
    except PromptLibError as e:
        raise PromptLibError.validation(f"Failed to track model: {e.message}") from e

    stamp = format_timestamp(now or utcnow())
    return Metadata(
        model=model_name.strip(),
        created_at=stamp,
        updated_at=stamp,
        token_estimate=estimate_tokens(content, is_code),
    )


def update_timestamps(metadata: Metadata, now: datetime | None = None) -> Metadata:
    """Return a copy of metadata with ``updated_at`` moved to now."""
    if not isinstance(metadata, Metadata):
        raise PromptLibError.validation(
            "Failed to update timestamps: Metadata must be a valid object"
        )
    try:
        created = parse_timestamp(metadata.created_at)
    except (TypeError, ValueError) as e:
        raise PromptLibError.validation(
            "Failed to update timestamps: Invalid or missing createdAt timestamp"
        ) from e

    current = now or utcnow()
    if current.tzinfo is None:
        current = current.replace(tzinfo=created.tzinfo)
    if current < created:
        raise PromptLibError.validation(
            "Failed to update timestamps: updatedAt must be greater than or equal to createdAt"
        )

    return replace(metadata, updated_at=format_timestamp(current))
