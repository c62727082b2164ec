"""Boards root commands for kanban-sync CLI."""

from pathlib import Path

import typer
from rich.console import Console

from kanban_sync.cli.app import app
from kanban_sync.config import ConfigManager

console = Console()

root_app = typer.Typer(help="Show or change where boards are stored")
app.add_typer(root_app, name="root")


def format_path(path: Path) -> str:
    """Format a path for display, using ~ for home directory."""
    home = str(Path.home())
    text = str(path)
    if text.startswith(home):
        return text.replace(home, "~", 1)  # pragma: no cover
    return text


@root_app.command("show")
def show_root() -> None:
    """Show the active boards root."""
    config = ConfigManager().config
    kind = "custom" if config.boards_directory else "default"
    console.print(f"Boards root: [cyan]{format_path(config.boards_path)}[/cyan] ({kind})")


@root_app.command("set")
def set_root(path: str = typer.Argument(..., help="New boards directory")) -> None:
    """Store boards in a custom directory."""
    try:
        boards_path = ConfigManager().set_boards_directory(path)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Boards root set to {format_path(boards_path)}[/green]")


@root_app.command("reset")
def reset_root() -> None:
    """Go back to the default boards directory."""
    boards_path = ConfigManager().reset_boards_directory()
    console.print(f"[green]Boards root reset to {format_path(boards_path)}[/green]")
