"""Export, import and backup of the prompt collection."""

from .backup import create_backup, load_backup, restore_from_backup
from .exporter import build_export, export_filename, export_to_file
from .importer import check_for_duplicates, import_file, import_prompts
from .integrity import validate_data_integrity, validate_import_data
from .models import (
    SCHEMA_VERSION,
    ConflictInfo,
    ImportOutcome,
    ImportStatus,
    Resolution,
    Statistics,
)
from .statistics import calculate_statistics

__all__ = [
    "SCHEMA_VERSION",
    "ConflictInfo",
    "ImportOutcome",
    "ImportStatus",
    "Resolution",
    "Statistics",
    "build_export",
    "calculate_statistics",
    "check_for_duplicates",
    "create_backup",
    "export_filename",
    "export_to_file",
    "import_file",
    "import_prompts",
    "load_backup",
    "restore_from_backup",
    "validate_data_integrity",
    "validate_import_data",
]
