"""Single-slot backup of the persisted collection, taken before every import."""

from __future__ import annotations

import json
import logging
from datetime import datetime

from ..errors import PromptLibError
from ..library import PromptLibrary
from ..models import format_timestamp, utcnow
from ..storage import BACKUP_KEY
from .models import Backup

logger = logging.getLogger(__name__)


def create_backup(library: PromptLibrary, now: datetime | None = None) -> Backup:
    """Snapshot the current collection, overwriting any earlier backup.

    Raises PromptLibError (BACKUP_FAILED) if the snapshot cannot be read or
    written; the caller must not mutate anything after that.
    """
    try:
        backup = Backup(
            timestamp=format_timestamp(now or utcnow()),
            prompts=library.load_raw(),
        )
        library.store.set(BACKUP_KEY, json.dumps(backup.to_dict()).encode("utf-8"))
    except PromptLibError as e:
        logger.error("Backup failed: %s", e.message)
        raise PromptLibError.backup_failed(e.message) from e
    logger.info("Backed up %d prompts at %s", len(backup.prompts), backup.timestamp)
    return backup


def load_backup(library: PromptLibrary) -> Backup | None:
    blob = library.store.get(BACKUP_KEY)
    if not blob:
        return None
    try:
        data = json.loads(blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PromptLibError.restore_failed(f"backup is not valid JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("prompts"), list):
        raise PromptLibError.restore_failed("backup has no prompts list")
    return Backup(timestamp=data.get("timestamp", ""), prompts=data["prompts"])


def restore_from_backup(library: PromptLibrary) -> Backup:
    """Replace the live collection with the backup, verbatim."""
    backup = load_backup(library)
    if backup is None:
        raise PromptLibError.restore_failed("No backup found")
    try:
        library.save_raw(backup.prompts)
    except PromptLibError as e:
        raise PromptLibError.restore_failed(e.message) from e
    logger.info("Restored %d prompts from backup %s", len(backup.prompts), backup.timestamp)
    return backup
