"""Command line interface for Offline Notes."""

import json
import logging
import sys
from datetime import datetime
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .cache import DuckDBCacheStorage, FetchRouter, OfflineCache
from .config import Config, config_manager
from .models.http import Request, RequestMode
from .models.note import Note, NoteDraft
from .services.notebook import Notebook
from .services.sources import (
    FileCaptureSource,
    FixedLocationSource,
    StreamDictationSource,
    map_link,
)
from .store import DuckDBNoteStore
from .utils.error_handling import create_user_friendly_error
from .utils.fetcher import RequestsFetcher


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def json_serializer(obj):
    """Custom JSON serializer for special types."""
    if isinstance(obj, Note):
        return obj.to_record()
    elif hasattr(obj, "model_dump"):
        return obj.model_dump()
    elif isinstance(obj, bytes):
        return f"<{len(obj)} bytes>"
    elif hasattr(obj, "isoformat"):
        return obj.isoformat()
    else:
        return str(obj)


def report_error(ctx: click.Context, action: str, error: Exception) -> None:
    """Print a user-facing error, with details in verbose mode."""
    click.echo(f"Error {action}: {create_user_friendly_error(error)}", err=True)
    if ctx.obj["verbose"]:
        click.echo(f"Details: {str(error)}", err=True)


def get_notebook(ctx: click.Context) -> Notebook:
    """Get the notebook for this invocation, opening the store on first use."""
    if "notebook" not in ctx.obj:
        config: Config = ctx.obj["config"]
        store = DuckDBNoteStore(db_path=config.store.db_path, version=config.store.version)
        ctx.call_on_close(store.close)
        ctx.obj["notebook"] = Notebook(store)
    return ctx.obj["notebook"]


def get_offline_cache(ctx: click.Context) -> OfflineCache:
    """Get the offline cache coordinator for this invocation."""
    if "offline" not in ctx.obj:
        offline_config = ctx.obj["config"].offline
        storage = DuckDBCacheStorage(db_path=offline_config.db_path)
        fetcher = RequestsFetcher(timeout=offline_config.fetch_timeout_seconds)
        ctx.call_on_close(storage.close)
        ctx.call_on_close(fetcher.close)
        ctx.obj["offline"] = OfflineCache(
            storage=storage,
            fetcher=fetcher,
            version=offline_config.cache_version,
            base_url=offline_config.base_url,
            shell_assets=offline_config.shell_assets,
            bootstrap_page=offline_config.bootstrap_page,
        )
    return ctx.obj["offline"]


TABLE_BOXES = {"rich": box.HEAVY_HEAD, "simple": box.SIMPLE, "minimal": box.MINIMAL}


def make_table(ctx: click.Context) -> Table:
    """Create a table in the configured style."""
    style = ctx.obj["config"].ui.table_style
    return Table(show_header=True, header_style="bold blue", box=TABLE_BOXES[style])


def preview(text: str, length: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= length else text[: length - 1] + "…"


def format_ms(value: int) -> str:
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", type=click.Path(exists=True), help="Path to configuration file"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool):
    """Offline Notes - local-first notes that keep working without a network.

    Notes live in a versioned local store; the app shell and resources are
    kept in versioned offline caches.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)

    try:
        if config:
            config_manager.config_path = config
            config_manager.reload()
        ctx.obj["config"] = config_manager.config
        ctx.obj["console"] = Console(no_color=not ctx.obj["config"].ui.colors)
    except Exception as e:
        click.echo(f"Error initializing Offline Notes: {create_user_friendly_error(e)}", err=True)
        if verbose:
            click.echo(f"Details: {str(e)}", err=True)
        ctx.exit(1)


# === Note commands ===


@cli.group()
def notes():
    """Create, list, edit and delete notes."""
    pass


def _apply_attachments(
    ctx: click.Context,
    notebook: Notebook,
    draft: NoteDraft,
    image: Optional[str],
    lat: Optional[float],
    lon: Optional[float],
    dictate: bool,
) -> NoteDraft:
    if dictate:
        draft = notebook.dictate(draft, StreamDictationSource(sys.stdin))
    if image:
        draft = notebook.attach_image(draft, FileCaptureSource(image))
    if lat is not None or lon is not None:
        if lat is None or lon is None:
            raise click.BadParameter("--lat and --lon must be given together")
        timeout = ctx.obj["config"].location.timeout_seconds
        draft = notebook.attach_location(draft, FixedLocationSource(lat, lon), timeout)
    return draft


@notes.command("add")
@click.option("--title", "-t", default="", help="Note title")
@click.option("--body", "-b", default="", help="Note text")
@click.option("--image", "-i", type=click.Path(exists=True, dir_okay=False), help="Attach an image file")
@click.option("--lat", type=float, help="Latitude to attach")
@click.option("--lon", type=float, help="Longitude to attach")
@click.option("--dictate", is_flag=True, help="Append lines read from stdin to the body")
@click.pass_context
def notes_add(
    ctx: click.Context,
    title: str,
    body: str,
    image: Optional[str],
    lat: Optional[float],
    lon: Optional[float],
    dictate: bool,
):
    """Save a new note."""
    try:
        notebook = get_notebook(ctx)
        draft = NoteDraft(title=title, body=body)
        draft = _apply_attachments(ctx, notebook, draft, image, lat, lon, dictate)
        note = notebook.save(draft)
        if note is None:
            click.echo("Nothing to save: title, body and image are all empty.")
        else:
            click.echo(note.id)
    except click.ClickException:
        raise
    except Exception as e:
        report_error(ctx, "saving note", e)
        ctx.exit(1)


@notes.command("list")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def notes_list(ctx: click.Context, output_format: str):
    """List notes, most recently edited first."""
    console = ctx.obj["console"]
    try:
        items = get_notebook(ctx).list_notes()

        if output_format == "json":
            click.echo(json.dumps(items, indent=2, default=json_serializer))
        elif not items:
            console.print("[dim]No notes.[/dim]")
        else:
            length = ctx.obj["config"].ui.preview_length
            table = make_table(ctx)
            table.add_column("ID", style="dim", no_wrap=True)
            table.add_column("Title", style="cyan")
            table.add_column("Preview")
            table.add_column("Updated", justify="right")
            table.add_column("", justify="center")

            for note in items:
                marks = ("📷" if note.has_image else "") + ("📍" if note.geo else "")
                table.add_row(
                    note.id[:8],
                    note.title or "(untitled)",
                    preview(note.body, length) or "[dim]No content[/dim]",
                    format_ms(note.updated),
                    marks,
                )
            console.print(table)
    except Exception as e:
        report_error(ctx, "listing notes", e)
        ctx.exit(1)


def _resolve_id(notebook: Notebook, note_id: str) -> Optional[str]:
    """Accept a full id or an unambiguous prefix of one."""
    if notebook.get(note_id):
        return note_id
    matches = [n.id for n in notebook.list_notes() if n.id.startswith(note_id)]
    return matches[0] if len(matches) == 1 else None


@notes.command("show")
@click.argument("note_id")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def notes_show(ctx: click.Context, note_id: str, output_format: str):
    """Show a single note."""
    console = ctx.obj["console"]
    try:
        notebook = get_notebook(ctx)
        resolved = _resolve_id(notebook, note_id)
        note = notebook.get(resolved) if resolved else None
        if note is None:
            raise click.ClickException(f"No note with id {note_id}")
        if output_format == "json":
            click.echo(json.dumps(note, indent=2, default=json_serializer))
        else:
            console.print(f"[bold cyan]{note.title or '(untitled)'}[/bold cyan]")
            console.print(f"[dim]Created {format_ms(note.created)}, edited {format_ms(note.updated)}[/dim]")
            if note.body:
                console.print()
                console.print(note.body)
            if note.has_image:
                console.print(f"[dim]Image attached ({len(note.image):,} chars)[/dim]")
            if note.geo:
                template = ctx.obj["config"].location.map_url
                console.print(f"[dim]Location:[/dim] {map_link(note.geo, template)}")
    except click.ClickException:
        raise
    except Exception as e:
        report_error(ctx, "showing note", e)
        ctx.exit(1)


@notes.command("edit")
@click.argument("note_id")
@click.option("--title", "-t", default=None, help="Replace the title")
@click.option("--body", "-b", default=None, help="Replace the text")
@click.option("--image", "-i", type=click.Path(exists=True, dir_okay=False), help="Replace the image")
@click.option("--no-image", is_flag=True, help="Remove the attached image")
@click.option("--lat", type=float, help="Latitude to attach")
@click.option("--lon", type=float, help="Longitude to attach")
@click.option("--dictate", is_flag=True, help="Append lines read from stdin to the body")
@click.pass_context
def notes_edit(
    ctx: click.Context,
    note_id: str,
    title: Optional[str],
    body: Optional[str],
    image: Optional[str],
    no_image: bool,
    lat: Optional[float],
    lon: Optional[float],
    dictate: bool,
):
    """Edit an existing note."""
    try:
        notebook = get_notebook(ctx)
        resolved = _resolve_id(notebook, note_id)
        draft = notebook.open_draft(resolved) if resolved else None
        if draft is None:
            raise click.ClickException(f"No note with id {note_id}")

        updates = {}
        if title is not None:
            updates["title"] = title
        if body is not None:
            updates["body"] = body
        draft = draft.model_copy(update=updates)
        if no_image:
            draft = notebook.remove_image(draft)
        draft = _apply_attachments(ctx, notebook, draft, image, lat, lon, dictate)
        note = notebook.save(draft)
        if note is None:
            click.echo("Note is now empty; nothing saved. Use 'notes delete' to remove it.")
        else:
            click.echo(note.id)
    except click.ClickException:
        raise
    except Exception as e:
        report_error(ctx, "editing note", e)
        ctx.exit(1)


@notes.command("delete")
@click.argument("note_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def notes_delete(ctx: click.Context, note_id: str, yes: bool):
    """Delete a note."""
    if not yes:
        if not click.confirm("Delete this note? This cannot be undone."):
            click.echo("Cancelled.")
            return

    try:
        notebook = get_notebook(ctx)
        resolved = _resolve_id(notebook, note_id) or note_id
        notebook.delete(resolved)
        click.echo("Note deleted.")
    except Exception as e:
        report_error(ctx, "deleting note", e)
        ctx.exit(1)


@notes.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def notes_reset(ctx: click.Context, yes: bool):
    """Delete ALL notes."""
    if not yes:
        if not click.confirm("This will delete ALL notes. Continue?"):
            click.echo("Cancelled.")
            return

    try:
        get_notebook(ctx).reset()
        click.echo("All notes deleted.")
    except Exception as e:
        report_error(ctx, "resetting notes", e)
        ctx.exit(1)


# === Store commands ===


@cli.group()
def store():
    """Note store maintenance."""
    pass


@store.command("status")
@click.pass_context
def store_status(ctx: click.Context):
    """Show note store status and statistics."""
    console = ctx.obj["console"]
    try:
        handle = get_notebook(ctx).store.open()
        stats = get_notebook(ctx).store.stats()

        console.print("[bold cyan]Note Store Status[/bold cyan]")
        console.print()
        console.print(f"[dim]Database:[/dim] {stats['location']}")
        console.print(f"[dim]Schema version:[/dim] {stats['version']}")
        if handle.migrated and handle.previous_version is not None:
            console.print(f"[yellow]Upgraded from version {handle.previous_version}[/yellow]")
        size_mb = stats.get("db_size_bytes", 0) / (1024 * 1024)
        console.print(f"[dim]Size:[/dim] {size_mb:.2f} MB")
        console.print(f"[dim]Notes:[/dim] {stats['notes']:,}")
    except Exception as e:
        report_error(ctx, "getting store status", e)
        ctx.exit(1)


# === Cache management commands ===


@cli.group()
def cache():
    """Offline cache management commands.

    Install the app shell for offline use and inspect cached resources.
    """
    pass


@cache.command("install")
@click.pass_context
def cache_install(ctx: click.Context):
    """Fetch the app shell and activate the declared cache generation."""
    console = ctx.obj["console"]
    try:
        offline = get_offline_cache(ctx)
        stored = offline.install()
        deleted = offline.activate()

        console.print(f"[green]Generation {offline.declared.version} active.[/green]")
        console.print(f"  Shell entries stored: {stored}")
        for name in deleted:
            console.print(f"  [dim]Deleted stale cache {name}[/dim]")
    except Exception as e:
        report_error(ctx, "installing offline cache", e)
        ctx.exit(1)


@cache.command("status")
@click.pass_context
def cache_status(ctx: click.Context):
    """Show cache generations and entry counts."""
    console = ctx.obj["console"]
    try:
        offline = get_offline_cache(ctx)
        status = offline.status()

        console.print("[bold cyan]Offline Cache Status[/bold cyan]")
        console.print()
        console.print(f"[dim]Database:[/dim] {offline.storage.db_path}")
        console.print(f"[dim]Declared version:[/dim] {status['declared_version']} ({status['declared_state']})")
        console.print(f"[dim]Active version:[/dim] {status['active_version'] or 'none'}")
        console.print(f"[dim]Shell:[/dim] {status['shell_cached']}/{status['shell_assets']} assets cached")
        console.print()

        table = make_table(ctx)
        table.add_column("Cache", style="cyan")
        table.add_column("Entries", justify="right")
        for name, count in status["caches"].items():
            table.add_row(name, f"{count:,}")
        console.print(table)
    except Exception as e:
        report_error(ctx, "getting cache status", e)
        ctx.exit(1)


@cache.command("fetch")
@click.argument("url")
@click.option("--navigate", is_flag=True, help="Treat the request as a page navigation")
@click.option("--output", "-o", type=click.File("wb"), help="Write the body to a file")
@click.pass_context
def cache_fetch(ctx: click.Context, url: str, navigate: bool, output):
    """Request URL through the offline router."""
    console = ctx.obj["console"]
    offline_config = ctx.obj["config"].offline
    try:
        offline = get_offline_cache(ctx)
        mode = RequestMode.NAVIGATE if navigate else RequestMode.CORS
        request = Request(url=url, mode=mode)
        with FetchRouter(
            offline,
            navigation_strategy=offline_config.navigation_strategy,
            max_workers=offline_config.revalidate_workers,
        ) as router:
            kind = router.classify(request)
            response = router.handle(request)

        source = "cache" if response.from_cache else "network"
        console.print(
            f"[dim]{kind.value}[/dim] HTTP {response.status} from {source}, {len(response.body):,} bytes"
        )
        if output:
            output.write(response.body)
    except Exception as e:
        report_error(ctx, "fetching resource", e)
        ctx.exit(1)


def main():
    """Entry point for the CLI application."""
    cli()
