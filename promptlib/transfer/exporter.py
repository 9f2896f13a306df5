"""Serialize the collection into a versioned export document."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from .. import config
from ..errors import PromptLibError
from ..library import PromptLibrary
from ..models import Prompt, format_timestamp, utcnow
from .integrity import validate_data_integrity
from .models import SCHEMA_VERSION, ExportResult
from .statistics import calculate_statistics

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "prompt-library-backup"

ConfirmCallback = Callable[[list[str]], bool]


def build_export(
    prompts: list,
    confirm: ConfirmCallback | None = None,
    now: datetime | None = None,
) -> dict | None:
    """Build the export document for prompts.

    Integrity problems do not block the export; they are handed to
    ``confirm``, and a False answer cancels it (None is returned).
    """
    if not prompts:
        raise PromptLibError.nothing_to_export()

    records = [p.to_dict() if isinstance(p, Prompt) else p for p in prompts]

    report = validate_data_integrity(records)
    if not report.valid:
        logger.warning(
            "Export found %d validation warnings: %s",
            len(report.errors),
            "; ".join(report.errors),
        )
        if confirm is not None and not confirm(report.errors):
            logger.info("Export cancelled after validation warnings")
            return None

    return {
        "version": SCHEMA_VERSION,
        "exportedAt": format_timestamp(now or utcnow()),
        "statistics": calculate_statistics(records).to_dict(),
        "prompts": records,
    }


def export_filename(now: datetime | None = None) -> str:
    """``prompt-library-backup-2024-05-01T12-30-45.json``; no colons or periods."""
    stamp = format_timestamp(now or utcnow())
    safe = stamp.replace(":", "-").replace(".", "-")[:-5]
    return f"{FILENAME_PREFIX}-{safe}.json"


def serialize_export(document: dict) -> bytes:
    return json.dumps(document, indent=2).encode("utf-8")


def export_to_file(
    library: PromptLibrary,
    directory: Path | None = None,
    confirm: ConfirmCallback | None = None,
    now: datetime | None = None,
) -> ExportResult | None:
    """Write the library's export document into directory.

    Returns None when the export was cancelled at the confirmation step.
    """
    prompts = library.list_prompts()
    moment = now or utcnow()
    document = build_export(prompts, confirm=confirm, now=moment)
    if document is None:
        return None

    out_dir = directory or config.EXPORTS_DIR
    out_dir.mkdir(parents=True, exist_ok=True)

    path = out_dir / export_filename(moment)
    counter = 1
    while path.exists():
        path = out_dir / f"{path.stem.rsplit('_', 1)[0]}_{counter}.json"
        counter += 1

    path.write_bytes(serialize_export(document))
    logger.info("Exported %d prompts to %s", len(prompts), path)

    return ExportResult(
        path=path,
        prompt_count=len(prompts),
        warnings=validate_data_integrity(document["prompts"]).errors,
    )
