from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

SCHEMA_VERSION = 1

MAX_RATING = 5
MAX_NOTE_LENGTH = 500
MAX_MODEL_NAME_LENGTH = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 date-time. Naive values are read as UTC.

    Raises ValueError for anything that is not a date-time string.
    """
    if not isinstance(value, str) or "T" not in value:
        raise ValueError(f"Not an ISO 8601 date-time: {value!r}")
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_valid_timestamp(value: Any) -> bool:
    try:
        parse_timestamp(value)
    except (TypeError, ValueError):
        return False
    return True


def is_token_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def is_valid_rating(value: Any) -> bool:
    """An integer from 0 (unrated) to MAX_RATING; bools do not count."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= MAX_RATING


def now_iso() -> str:
    return format_timestamp(utcnow())


def generate_id(taken: Iterable[Any] = ()) -> int:
    """Millisecond-clock id, bumped past any integer id already taken."""
    candidate = time.time_ns() // 1_000_000
    numeric = [
        i for i in taken if isinstance(i, int) and not isinstance(i, bool)
    ]
    if numeric and candidate <= max(numeric):
        candidate = max(numeric) + 1
    return candidate


@dataclass
class TokenEstimate:
    min: int = 0
    max: int = 0
    confidence: str = "high"  # "high", "medium", "low"

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data: dict) -> TokenEstimate:
        return cls(
            min=data.get("min", 0),
            max=data.get("max", 0),
            confidence=data.get("confidence", "high"),
        )


@dataclass
class Metadata:
    model: str
    created_at: str
    updated_at: str
    token_estimate: TokenEstimate | None = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "model": self.model,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.token_estimate is not None:
            result["tokenEstimate"] = self.token_estimate.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict) -> Metadata:
        estimate = data.get("tokenEstimate")
        return cls(
            model=data.get("model", ""),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", data.get("createdAt", "")),
            token_estimate=(
                TokenEstimate.from_dict(estimate) if isinstance(estimate, dict) else None
            ),
        )


@dataclass
class Note:
    content: str
    id: int | str = field(default_factory=generate_id)
    created_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return {"id": self.id, "content": self.content, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: dict) -> Note:
        return cls(
            id=data.get("id"),
            content=data.get("content", ""),
            created_at=data.get("createdAt", ""),
        )


_PROMPT_KEYS = {
    "id",
    "title",
    "content",
    "createdAt",
    "rating",
    "isFavorite",
    "notes",
    "metadata",
}


@dataclass
class Prompt:
    title: str
    content: str
    id: int | str = field(default_factory=generate_id)
    created_at: str = field(default_factory=now_iso)
    rating: int = 0
    is_favorite: bool = False
    notes: list[Note] = field(default_factory=list)
    metadata: Metadata | None = None
    # Keys we do not model are carried through untouched.
    extra: dict = field(default_factory=dict)

    @property
    def model(self) -> str:
        return self.metadata.model if self.metadata else ""

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": self.created_at,
            "rating": self.rating,
            "isFavorite": self.is_favorite,
            "notes": [n.to_dict() for n in self.notes],
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata.to_dict()
        result.update(self.extra)
        return result

    @classmethod
    def from_dict(cls, data: dict) -> Prompt:
        metadata = data.get("metadata")
        return cls(
            id=data.get("id"),
            title=data.get("title", ""),
            content=data.get("content", ""),
            created_at=data.get("createdAt", ""),
            rating=data.get("rating", 0),
            is_favorite=bool(data.get("isFavorite", False)),
            notes=[
                Note.from_dict(n) for n in data.get("notes") or [] if isinstance(n, dict)
            ],
            metadata=Metadata.from_dict(metadata) if isinstance(metadata, dict) else None,
            extra={k: v for k, v in data.items() if k not in _PROMPT_KEYS},
        )
