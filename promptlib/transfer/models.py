from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

SCHEMA_VERSION = "1.0"


@dataclass
class Statistics:
    """Summary of a collection, embedded in every export document."""

    total_prompts: int = 0
    average_rating: float = 0
    most_used_model: str = "N/A"
    total_notes: int = 0
    favorites_count: int = 0
    total_tokens_min: int = 0
    total_tokens_max: int = 0

    def to_dict(self) -> dict:
        return {
            "totalPrompts": self.total_prompts,
            "averageRating": self.average_rating,
            "mostUsedModel": self.most_used_model,
            "totalNotes": self.total_notes,
            "favoritesCount": self.favorites_count,
            "totalTokensEstimate": {
                "min": self.total_tokens_min,
                "max": self.total_tokens_max,
            },
        }


@dataclass
class IntegrityReport:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class ConflictInfo:
    """What the conflict resolver is shown before it decides."""

    existing_count: int
    import_count: int
    duplicate_count: int
    duplicate_ids: list = field(default_factory=list)

    @property
    def has_duplicates(self) -> bool:
        return self.duplicate_count > 0


class Resolution(Enum):
    MERGE = "merge"
    REPLACE = "replace"
    CANCEL = "cancel"


class ImportStatus(Enum):
    IMPORTED = "imported"  # no conflicts, appended
    MERGED = "merged"
    REPLACED = "replaced"
    CANCELLED = "cancelled"
    ROLLED_BACK = "rolled_back"


@dataclass
class ImportOutcome:
    status: ImportStatus
    existing_count: int = 0
    import_count: int = 0
    added_count: int = 0
    duplicate_count: int = 0
    total_count: int = 0
    error: Exception | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status in (
            ImportStatus.IMPORTED,
            ImportStatus.MERGED,
            ImportStatus.REPLACED,
        )

    @property
    def message(self) -> str:
        if self.status is ImportStatus.IMPORTED:
            return f"Import successful! Added {self.added_count} new prompts"
        if self.status is ImportStatus.MERGED:
            return (
                f"Merged successfully! Kept {self.existing_count} existing prompts, "
                f"added {self.added_count} new prompts"
            )
        if self.status is ImportStatus.REPLACED:
            return f"Replaced all data! Imported {self.import_count} prompts"
        if self.status is ImportStatus.CANCELLED:
            return "Import cancelled by user."
        return f"Import failed: {self.error}. Successfully restored from backup."

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "existing_count": self.existing_count,
            "import_count": self.import_count,
            "added_count": self.added_count,
            "duplicate_count": self.duplicate_count,
            "total_count": self.total_count,
            "errors": self.errors,
        }


@dataclass
class Backup:
    timestamp: str
    prompts: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "prompts": self.prompts}


@dataclass
class ExportResult:
    path: Path
    prompt_count: int
    warnings: list[str] = field(default_factory=list)
