"""Import an export document into the library.

The protocol runs strictly in order:

    1. back up the persisted collection (abort on failure, nothing touched)
    2. parse the document
    3. validate version, envelope and records
    4. detect id conflicts with the live collection
    5. no conflicts: append every imported record
    6. conflicts: ask the resolver to merge, replace or cancel
    7. commit the result in one write
    8. any failure in 2-7 restores the backup

A failure whose rollback also fails is raised as CRITICAL_RESTORE_FAILURE.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

from ..errors import PromptLibError
from ..library import PromptLibrary
from .backup import create_backup, restore_from_backup
from .integrity import validate_import_data
from .models import ConflictInfo, ImportOutcome, ImportStatus, Resolution

logger = logging.getLogger(__name__)

ConflictResolver = Callable[[ConflictInfo], Resolution]


def check_for_duplicates(existing: list[dict], imported: list[dict]) -> ConflictInfo:
    existing_ids = {_id_key(p.get("id")) for p in existing}
    duplicate_ids = [p.get("id") for p in imported if _id_key(p.get("id")) in existing_ids]
    return ConflictInfo(
        existing_count=len(existing),
        import_count=len(imported),
        duplicate_count=len(duplicate_ids),
        duplicate_ids=duplicate_ids,
    )


def _id_key(value):
    # Ids compare strictly: True, 1 and 1.0 are equal in Python but distinct ids.
    try:
        hash(value)
    except TypeError:
        return ("json", json.dumps(value, sort_keys=True))
    return (type(value).__name__, value)


def parse_document(data: bytes | str) -> dict:
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PromptLibError.malformed_document(str(e)) from e


def _apply(
    library: PromptLibrary,
    data: bytes | str,
    resolve_conflict: ConflictResolver,
) -> ImportOutcome:
    document = parse_document(data)

    report = validate_import_data(document)
    if not report.valid:
        raise PromptLibError.invalid_document(report.errors)

    imported: list[dict] = document["prompts"]
    existing = library.load_records()
    conflicts = check_for_duplicates(existing, imported)

    outcome = ImportOutcome(
        status=ImportStatus.IMPORTED,
        existing_count=len(existing),
        import_count=len(imported),
        duplicate_count=conflicts.duplicate_count,
    )

    if not conflicts.has_duplicates:
        final = existing + imported
        outcome.added_count = len(imported)
    else:
        decision = resolve_conflict(conflicts)
        try:
            choice = Resolution(decision)
        except ValueError as e:
            raise PromptLibError.validation(f"Unknown conflict resolution: {decision!r}") from e
        logger.info(
            "Import conflict: %d duplicates, resolved with %s",
            conflicts.duplicate_count,
            choice.value,
        )
        if choice is Resolution.CANCEL:
            outcome.status = ImportStatus.CANCELLED
            outcome.total_count = len(existing)
            return outcome
        if choice is Resolution.MERGE:
            existing_ids = {_id_key(p.get("id")) for p in existing}
            new = [p for p in imported if _id_key(p.get("id")) not in existing_ids]
            final = existing + new
            outcome.status = ImportStatus.MERGED
            outcome.added_count = len(new)
        else:
            final = list(imported)
            outcome.status = ImportStatus.REPLACED
            outcome.added_count = len(imported)

    library.save_raw(final)
    outcome.total_count = len(final)
    return outcome


def import_prompts(
    library: PromptLibrary,
    data: bytes | str,
    resolve_conflict: ConflictResolver,
) -> ImportOutcome:
    """Import an export document, rolling back to the backup on failure."""
    create_backup(library)

    try:
        outcome = _apply(library, data, resolve_conflict)
    except Exception as e:
        logger.error("Import failed: %s", e)
        try:
            restore_from_backup(library)
        except PromptLibError as restore_error:
            logger.critical("Backup restoration failed: %s", restore_error.message)
            raise PromptLibError.critical_restore_failure(
                f"import failed with {e}; restore failed with {restore_error.message}"
            ) from restore_error
        logger.info("Rolled back to backup after failed import")
        return ImportOutcome(
            status=ImportStatus.ROLLED_BACK,
            error=e,
            errors=getattr(e, "errors", None) or [str(e)],
        )

    logger.info("Import finished: %s", outcome.message)
    return outcome


def import_file(
    library: PromptLibrary,
    path: Path,
    resolve_conflict: ConflictResolver,
) -> ImportOutcome:
    """Import from a .json file; any other name is rejected before reading."""
    path = Path(path)
    if not path.name.endswith(".json"):
        raise PromptLibError.invalid_file(path.name)
    return import_prompts(library, path.read_bytes(), resolve_conflict)
