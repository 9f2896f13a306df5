"""Filesystem locations and limits, overridable from the environment or a .env file."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path(
    os.environ.get("PROMPTLIB_HOME", Path.home() / ".config" / "promptlib")
).expanduser()
DEFAULT_DB_PATH = Path(
    os.environ.get("PROMPTLIB_DB", DATA_DIR / "promptlib.db")
).expanduser()
EXPORTS_DIR = DATA_DIR / "exports"
LOGS_DIR = DATA_DIR / "logs"

# Roughly what a browser grants a single origin for local storage.
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


def quota_bytes() -> int | None:
    """Storage quota from PROMPTLIB_QUOTA_BYTES; 0 disables the limit."""
    raw = os.environ.get("PROMPTLIB_QUOTA_BYTES")
    if raw is None or raw.strip() == "":
        return DEFAULT_QUOTA_BYTES
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_QUOTA_BYTES
    return value if value > 0 else None
