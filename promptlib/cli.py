"""promptlib CLI - a local prompt library with ratings, notes and JSON export/import."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import config
from .errors import PromptLibError
from .library import PromptLibrary
from .models import Prompt
from .storage import SQLiteBlobStore
from .transfer import (
    ConflictInfo,
    ImportStatus,
    Resolution,
    calculate_statistics,
    export_to_file,
    import_file,
    load_backup,
    restore_from_backup,
)
from .views import ViewMode, empty_message, view

console = Console()


def _setup_logging(log_dir: Path) -> logging.Logger:
    """Send promptlib logs to a file beside the database."""
    logger = logging.getLogger("promptlib")
    logger.setLevel(logging.INFO)

    # Clear existing handlers
    logger.handlers.clear()

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "promptlib.log")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
    )
    logger.addHandler(handler)

    return logger


def _library(ctx: click.Context) -> PromptLibrary:
    if ctx.obj.get("library") is None:
        try:
            store = SQLiteBlobStore(db_path=ctx.obj["db"], quota_bytes=config.quota_bytes())
        except PromptLibError as e:
            _fail(e)
        ctx.obj["library"] = PromptLibrary(store)
    return ctx.obj["library"]


def _fail(e: PromptLibError) -> None:
    console.print(f"[red]Error:[/red] {escape(e.message)}")
    sys.exit(1)


def _stars(rating: int) -> str:
    rating = rating or 0
    return "★" * rating + "☆" * (5 - rating)


def _tokens(prompt: Prompt) -> str:
    if not prompt.metadata or not prompt.metadata.token_estimate:
        return ""
    est = prompt.metadata.token_estimate
    return f"{est.min}-{est.max} ({est.confidence})"


@click.group()
@click.version_option(package_name="prompt-library")
@click.option(
    "--db",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Database file (default: ~/.config/promptlib/promptlib.db)",
)
@click.pass_context
def cli(ctx: click.Context, db: Path | None):
    """promptlib - save, rate and annotate prompts; export and import them as JSON."""
    db_path = db or config.DEFAULT_DB_PATH
    ctx.ensure_object(dict)
    ctx.obj["db"] = db_path
    _setup_logging(db_path.parent / "logs")


@cli.command()
@click.argument("title")
@click.option("--model", "-m", required=True, help="Model the prompt is written for")
@click.option("--content", "-c", default=None, help="Prompt text")
@click.option(
    "--file", "-f", "content_file", type=click.File("r"), default=None,
    help="Read prompt text from a file ('-' for stdin)",
)
@click.option("--code", "is_code", is_flag=True, help="Content is code (denser tokens)")
@click.pass_context
def add(ctx, title: str, model: str, content: str | None, content_file, is_code: bool):
    """Save a new prompt."""
    if content_file is not None:
        content = content_file.read()
    if not content:
        raise click.UsageError("Provide prompt text with --content or --file")

    try:
        prompt = _library(ctx).create_prompt(title, model, content, is_code)
    except PromptLibError as e:
        _fail(e)

    if prompt is None:
        console.print("[yellow]Nothing saved: title, model and content are required.[/yellow]")
        return
    console.print(
        f"[green]Saved[/green] {escape(prompt.title)} [dim]({prompt.id}, {_tokens(prompt)} tokens)[/dim]"
    )


@cli.command(name="list")
@click.option(
    "--filter",
    "mode",
    type=click.Choice([m.value for m in ViewMode]),
    default=ViewMode.ALL.value,
    help="Which prompts to show",
)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_context
def list_cmd(ctx, mode: str, as_json: bool):
    """List prompts, newest first."""
    view_mode = ViewMode(mode)
    try:
        prompts = view(_library(ctx).list_prompts(), view_mode)
    except PromptLibError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps([p.to_dict() for p in prompts], indent=2))
        return

    if not prompts:
        console.print(f"[yellow]{empty_message(view_mode)}[/yellow]")
        return

    table = Table(title="Prompts")
    table.add_column("ID", style="dim")
    table.add_column("", justify="center")
    table.add_column("Title", style="cyan")
    table.add_column("Model")
    table.add_column("Rating")
    table.add_column("Tokens", justify="right")
    table.add_column("Notes", justify="right")
    table.add_column("Created")

    for p in prompts:
        created = (p.metadata.created_at if p.metadata else p.created_at) or ""
        table.add_row(
            str(p.id),
            "♥" if p.is_favorite else "",
            escape(p.title),
            escape(p.model),
            _stars(p.rating),
            _tokens(p),
            str(len(p.notes)),
            created[:10],
        )

    console.print(table)


@cli.command()
@click.argument("prompt_id")
@click.pass_context
def show(ctx, prompt_id: str):
    """Show a prompt with its notes and metadata."""
    try:
        prompt = _library(ctx).get_prompt(prompt_id)
    except PromptLibError as e:
        _fail(e)
    if prompt is None:
        console.print(f"[red]No prompt with id {escape(prompt_id)}[/red]")
        sys.exit(1)

    lines = [escape(prompt.content), ""]
    if prompt.metadata:
        lines.append(f"Model: {escape(prompt.metadata.model)}")
        lines.append(f"Tokens: {_tokens(prompt)}")
        lines.append(f"Created: {prompt.metadata.created_at}")
        if prompt.metadata.updated_at != prompt.metadata.created_at:
            lines.append(f"Updated: {prompt.metadata.updated_at}")
    lines.append(f"Rating: {_stars(prompt.rating)}")
    console.print(
        Panel(
            "\n".join(lines),
            title=("♥ " if prompt.is_favorite else "") + escape(prompt.title),
            subtitle=str(prompt.id),
        )
    )

    if prompt.notes:
        table = Table(title=f"Notes ({len(prompt.notes)})")
        table.add_column("ID", style="dim")
        table.add_column("Note")
        table.add_column("Created")
        for note in prompt.notes:
            table.add_row(str(note.id), escape(note.content), note.created_at[:16])
        console.print(table)


@cli.command()
@click.argument("prompt_id")
@click.option("--title", "-t", default=None, help="New title")
@click.option("--content", "-c", default=None, help="New prompt text")
@click.option("--code", "is_code", is_flag=True, help="Content is code (denser tokens)")
@click.pass_context
def edit(ctx, prompt_id: str, title: str | None, content: str | None, is_code: bool):
    """Edit a prompt's title or content."""
    if title is None and content is None:
        raise click.UsageError("Nothing to change: pass --title and/or --content")
    try:
        prompt = _library(ctx).update_prompt(prompt_id, title=title, content=content, is_code=is_code)
    except PromptLibError as e:
        _fail(e)
    if prompt is None:
        console.print(f"[yellow]Nothing changed for {escape(prompt_id)}[/yellow]")
        return
    console.print(f"[green]Updated[/green] {escape(prompt.title)}")


@cli.command()
@click.argument("prompt_id")
@click.argument("rating", type=click.IntRange(0, 5))
@click.pass_context
def rate(ctx, prompt_id: str, rating: int):
    """Rate a prompt; repeating the current rating clears it."""
    try:
        prompt = _library(ctx).set_rating(prompt_id, rating)
    except PromptLibError as e:
        _fail(e)
    if prompt is None:
        console.print(f"[yellow]No prompt with id {escape(prompt_id)}[/yellow]")
        return
    console.print(f"{escape(prompt.title)}: {_stars(prompt.rating)}")


@cli.command()
@click.argument("prompt_id")
@click.pass_context
def fav(ctx, prompt_id: str):
    """Toggle a prompt's favorite flag."""
    try:
        prompt = _library(ctx).toggle_favorite(prompt_id)
    except PromptLibError as e:
        _fail(e)
    if prompt is None:
        console.print(f"[yellow]No prompt with id {escape(prompt_id)}[/yellow]")
        return
    state = "[red]♥[/red] favorite" if prompt.is_favorite else "♡ not a favorite"
    console.print(f"{escape(prompt.title)}: {state}")


@cli.command()
@click.argument("prompt_id")
@click.pass_context
def rm(ctx, prompt_id: str):
    """Delete a prompt and its notes."""
    try:
        prompt = _library(ctx).delete_prompt(prompt_id)
    except PromptLibError as e:
        _fail(e)
    if prompt is None:
        console.print(f"[yellow]No prompt with id {escape(prompt_id)}[/yellow]")
        return
    console.print(f"[green]Deleted[/green] {escape(prompt.title)}")


@cli.group()
def note():
    """Manage notes on a prompt."""


@note.command(name="add")
@click.argument("prompt_id")
@click.argument("text")
@click.pass_context
def note_add(ctx, prompt_id: str, text: str):
    """Add a note (max 500 characters)."""
    try:
        added = _library(ctx).add_note(prompt_id, text.strip())
    except PromptLibError as e:
        _fail(e)
    if added is None:
        console.print("[yellow]Note not added (unknown prompt, empty or over 500 characters).[/yellow]")
        return
    console.print(f"[green]Added note[/green] {added.id}")


@note.command(name="edit")
@click.argument("prompt_id")
@click.argument("note_id")
@click.argument("text")
@click.pass_context
def note_edit(ctx, prompt_id: str, note_id: str, text: str):
    """Replace a note's text."""
    try:
        edited = _library(ctx).edit_note(prompt_id, note_id, text.strip())
    except PromptLibError as e:
        _fail(e)
    if edited is None:
        console.print("[yellow]Note not changed.[/yellow]")
        return
    console.print(f"[green]Updated note[/green] {edited.id}")


@note.command(name="rm")
@click.argument("prompt_id")
@click.argument("note_id")
@click.pass_context
def note_rm(ctx, prompt_id: str, note_id: str):
    """Delete a note."""
    try:
        prompt = _library(ctx).delete_note(prompt_id, note_id)
    except PromptLibError as e:
        _fail(e)
    if prompt is None:
        console.print("[yellow]No such note.[/yellow]")
        return
    console.print(f"[green]Deleted note[/green] {escape(note_id)}")


@cli.command()
@click.pass_context
def stats(ctx):
    """Show library statistics."""
    try:
        s = calculate_statistics(_library(ctx).list_prompts())
    except PromptLibError as e:
        _fail(e)
    console.print(
        Panel(
            f"Prompts: {s.total_prompts}\n"
            f"Average rating: {s.average_rating}\n"
            f"Most used model: {escape(s.most_used_model)}\n"
            f"Notes: {s.total_notes}\n"
            f"Favorites: {s.favorites_count}\n"
            f"Tokens: {s.total_tokens_min}-{s.total_tokens_max}",
            title="Library Statistics",
        )
    )


@cli.command()
@click.option(
    "--dir", "directory", type=click.Path(file_okay=False, path_type=Path),
    default=None, help="Output directory (default: ~/.config/promptlib/exports)",
)
@click.option("--yes", "-y", is_flag=True, help="Export even with validation warnings")
@click.pass_context
def export(ctx, directory: Path | None, yes: bool):
    """Export all prompts to a timestamped JSON file."""

    def confirm(errors: list[str]) -> bool:
        for error in errors:
            console.print(f"  [yellow]![/yellow] {escape(error)}")
        if yes:
            return True
        return click.confirm(
            f"Found {len(errors)} validation warnings. Continue export anyway?",
            default=False,
        )

    try:
        result = export_to_file(_library(ctx), directory=directory, confirm=confirm)
    except PromptLibError as e:
        _fail(e)

    if result is None:
        console.print("[yellow]Export cancelled.[/yellow]")
        return
    console.print(
        f"[green]Successfully exported {result.prompt_count} prompts![/green]\nFile: {result.path}"
    )


def _ask_resolution(info: ConflictInfo) -> Resolution:
    console.print(
        Panel(
            f"Found {info.duplicate_count} prompt(s) with duplicate IDs.\n\n"
            f"Existing prompts: {info.existing_count}\n"
            f"New prompts: {info.import_count}\n"
            f"Duplicates: {info.duplicate_count}\n\n"
            "merge   - keep existing, add new ones\n"
            "replace - delete existing, import all\n"
            "cancel  - abort import",
            title="Import Conflict Detected",
            border_style="yellow",
        )
    )
    choice = click.prompt(
        "How would you like to proceed?",
        type=click.Choice([r.value for r in Resolution]),
        default=Resolution.CANCEL.value,
    )
    return Resolution(choice)


@cli.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--strategy",
    type=click.Choice([r.value for r in Resolution]),
    default=None,
    help="Resolve id conflicts without asking",
)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def import_cmd(ctx, file: Path, strategy: str | None, yes: bool):
    """Import prompts from an export file. A backup is taken first."""
    if not file.name.endswith(".json"):
        console.print("[red]Please select a valid JSON file.[/red]")
        sys.exit(1)
    if not yes and not click.confirm(
        f'Import prompts from "{file.name}"? A backup will be created automatically.',
        default=True,
    ):
        return

    if strategy:
        resolver = lambda _info: Resolution(strategy)  # noqa: E731
    else:
        resolver = _ask_resolution

    try:
        outcome = import_file(_library(ctx), file, resolver)
    except PromptLibError as e:
        _fail(e)

    if outcome.status is ImportStatus.ROLLED_BACK:
        console.print(f"[red]Import failed:[/red] {escape(str(outcome.error))}")
        console.print("[yellow]Successfully restored from backup.[/yellow]")
        sys.exit(1)
    if outcome.status is ImportStatus.CANCELLED:
        console.print("[yellow]Import cancelled by user.[/yellow]")
        return
    console.print(f"[green]{escape(outcome.message)}[/green]")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def restore(ctx, yes: bool):
    """Restore prompts from the backup taken before the last import."""
    library = _library(ctx)
    try:
        backup = load_backup(library)
        if backup is None:
            console.print("[yellow]No backup found.[/yellow]")
            sys.exit(1)
        if not yes and not click.confirm(
            f"Replace current prompts with {len(backup.prompts)} prompts from backup {backup.timestamp}?",
            default=False,
        ):
            return
        restore_from_backup(library)
    except PromptLibError as e:
        _fail(e)
    console.print(f"[green]Restored {len(backup.prompts)} prompts from backup.[/green]")


def main():
    cli()


if __name__ == "__main__":
    main()
