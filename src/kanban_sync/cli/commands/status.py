"""Status command for kanban-sync CLI."""

from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from kanban_sync.cli.app import app
from kanban_sync.config import WATCH_STATUS_JSON, ConfigManager
from kanban_sync.sync.watch_service import WatchServiceState

# Create rich console
console = Console()


def build_summary(state: WatchServiceState) -> str:
    """Build the summary lines shown in the status panel."""
    running = "[green]running[/green]" if state.running else "[red]stopped[/red]"
    if state.running and state.paused:
        running = "[yellow]paused[/yellow]"

    last_scan = state.last_scan.strftime("%Y-%m-%d %H:%M:%S") if state.last_scan else "never"
    lines = [
        f"Status: {running} (pid {state.pid})",
        f"Boards root: {state.boards_path or '-'}",
        f"Started: {state.start_time:%Y-%m-%d %H:%M:%S}",
        f"Last scan: {last_scan}",
        f"Scans: {state.scan_count}  Events: {state.event_count}  Errors: {state.error_count}",
        f"Polling interval: {state.polling_interval}ms",
    ]
    return "\n".join(lines)


@app.command()
def status(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Recent events to show")] = 10,
) -> None:
    """Show the state last recorded by the watch service."""
    status_path = ConfigManager().config.data_dir_path / WATCH_STATUS_JSON
    if not status_path.exists():
        console.print("[yellow]No watch status found. Start the watcher with 'kanban-sync watch'.[/yellow]")
        raise typer.Exit(1)

    try:
        state = WatchServiceState.model_validate_json(status_path.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]Unreadable watch status file {status_path}: {e}[/red]")
        raise typer.Exit(1)

    console.print(Panel(build_summary(state), title="Watch Service", expand=False))

    if not state.recent_events:
        console.print("[dim]No events recorded yet[/dim]")
        return

    table = Table(title="Recent Events")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Board")
    table.add_column("Column")
    table.add_column("Item")
    table.add_column("Status")

    for event in state.recent_events[:limit]:
        status_style = "green" if event.status == "success" else "red"
        table.add_row(
            event.timestamp.strftime("%H:%M:%S"),
            event.action,
            event.board_name or "",
            event.column_name or "",
            event.item_id or event.error or "",
            f"[{status_style}]{event.status}[/{status_style}]",
        )

    console.print(table)
