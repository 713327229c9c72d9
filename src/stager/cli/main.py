"""
CLI for the blob stager.

Commands:
    stager stage FILE... --slot KEY - Stage files through a throwaway controller
    stager sweep - Delete orphaned backing files
    stager config - Show current configuration
    stager version - Print version
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stager import __version__
from stager.config import Settings, clear_settings_cache, get_settings
from stager.controller import SlotCacheController
from stager.exceptions import ConfigurationError
from stager.logging import setup_logging
from stager.slots import build_fetch_url
from stager.store.sweep import sweep_orphans
from stager.types import FileSource, UnchangedSource

app = typer.Typer(
    name="stager",
    help="Stager - session-scoped blob staging with cache-friendly identifiers",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        settings = get_settings()
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] Configuration is invalid.\n{e}")
        return None
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return settings


@app.command()
def stage(
    files: Annotated[
        list[Path],
        typer.Argument(help="Files to stage in order, as successive versions"),
    ],
    slot: Annotated[
        str, typer.Option("--slot", "-s", help="Slot key to stage under")
    ] = "cli",
    refresh: Annotated[
        bool,
        typer.Option("--refresh", help="Also stage an unchanged refresh after each file"),
    ] = False,
    resource_path: Annotated[
        str,
        typer.Option("--resource-path", help="Base path of the fetch endpoint"),
    ] = "/stager/fetch",
) -> None:
    """Stage files through a throwaway controller and verify each fetch.

    Every file is a new version of the same slot. The controller is torn
    down at the end, so no backing file outlives the command.
    """
    settings = _get_settings_safe()
    if settings is None:
        raise typer.Exit(1)

    missing = [f for f in files if not f.is_file()]
    if missing:
        error_console.print(f"[red]Error:[/red] Not a file: {missing[0]}")
        raise typer.Exit(1)

    try:
        controller = SlotCacheController.from_settings(settings)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Slot {slot}", show_header=True)
    table.add_column("Source", style="cyan")
    table.add_column("Generation", justify="right")
    table.add_column("Identifier", style="green")
    table.add_column("Bytes", justify="right")
    table.add_column("Fetch", justify="center")

    try:
        for path in files:
            identifier = controller.stage(slot, FileSource(path))
            table.add_row(*_stage_row(controller, str(path), slot, identifier, path.read_bytes()))
            if refresh:
                identifier = controller.stage(slot, UnchangedSource())
                table.add_row(*_stage_row(controller, "(refresh)", slot, identifier, path.read_bytes()))

        console.print(table)
        console.print(
            f"\n[dim]Fetch URL:[/dim] "
            f"{build_fetch_url(resource_path, controller.current_identifier(slot), param_name=settings.FETCH_PARAM)}"
        )
    finally:
        removed = controller.teardown()
        console.print(f"[dim]Torn down, {removed} backing file(s) removed.[/dim]")


def _stage_row(
    controller: SlotCacheController,
    label: str,
    slot: str,
    identifier: str,
    expected: bytes,
) -> tuple[str, str, str, str, str]:
    stream = controller.fetch(identifier)
    if stream is None:
        return label, str(controller.generation(slot)), identifier, "-", "[red]miss[/red]"
    with stream:
        data = stream.read()
    verdict = "[green]ok[/green]" if data == expected else "[red]mismatch[/red]"
    return label, str(controller.generation(slot)), identifier, str(len(data)), verdict


@app.command()
def sweep(
    max_age_hours: Annotated[
        Optional[float],
        typer.Option("--max-age-hours", "-a", help="Only delete files older than this; must exceed the longest running session"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="List orphans without deleting them"),
    ] = False,
) -> None:
    """Delete backing files left behind by processes that never tore down.

    Files are matched by name and age only. On a temp dir shared with running
    stagers, their files older than the cutoff are deleted too; use a
    dedicated STAGER_TEMP_DIR or a max age longer than any session.
    """
    settings = _get_settings_safe()
    if settings is None:
        raise typer.Exit(1)

    hours = max_age_hours if max_age_hours is not None else settings.ORPHAN_MAX_AGE_HOURS
    report = sweep_orphans(
        settings.temp_dir,
        settings.FILE_PREFIX,
        settings.FILE_SUFFIX,
        older_than=hours * 3600,
        dry_run=dry_run,
    )

    verb = "Would remove" if dry_run else "Removed"
    console.print(
        Panel(
            f"[bold]Directory:[/bold] {settings.temp_dir}\n"
            f"[bold]{verb}:[/bold] {report.removed_count} file(s)\n"
            f"[bold]Bytes:[/bold] {report.bytes_freed}\n"
            f"[bold]Failed:[/bold] {len(report.failed)}",
            title="[bold cyan]Orphan Sweep[/bold cyan]",
            border_style="cyan",
        )
    )
    if report.failed:
        raise typer.Exit(1)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _get_settings_safe()
    if settings is None:
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"session-stager version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
