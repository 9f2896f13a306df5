"""MCP tools for statistics, export, import and restore."""

from __future__ import annotations

import json
from pathlib import Path

from ..errors import PromptLibError
from ..library import PromptLibrary
from ..transfer import (
    Resolution,
    calculate_statistics,
    export_to_file,
    import_file,
    restore_from_backup,
)


def register_tools(mcp, library: PromptLibrary) -> None:
    """Register transfer tools.

    Tools have no interactive dialog, so the conflict decision is passed in
    up front as ``strategy``.
    """

    @mcp.tool()
    def prompt_stats() -> str:
        """Summary statistics for the whole library."""
        stats = calculate_statistics(library.list_prompts())
        return json.dumps(stats.to_dict())

    @mcp.tool()
    def prompt_export(directory: str | None = None) -> str:
        """Export every prompt to a timestamped JSON file."""
        result = export_to_file(
            library, directory=Path(directory).expanduser() if directory else None
        )
        return json.dumps(
            {
                "status": "exported",
                "path": str(result.path),
                "prompt_count": result.prompt_count,
                "warnings": result.warnings,
            }
        )

    @mcp.tool()
    def prompt_import(path: str, strategy: str = "cancel") -> str:
        """Import prompts from an export file.

        strategy decides id conflicts: merge (keep existing, add new),
        replace (discard existing) or cancel.
        """
        try:
            resolution = Resolution(strategy)
        except ValueError as e:
            raise PromptLibError.validation(
                f"Unknown strategy {strategy!r}. Use merge, replace or cancel"
            ) from e
        outcome = import_file(library, Path(path).expanduser(), lambda _info: resolution)
        return json.dumps(outcome.to_dict())

    @mcp.tool()
    def prompt_restore() -> str:
        """Restore the library from the backup taken before the last import."""
        backup = restore_from_backup(library)
        return json.dumps(
            {
                "status": "restored",
                "timestamp": backup.timestamp,
                "prompt_count": len(backup.prompts),
            }
        )
