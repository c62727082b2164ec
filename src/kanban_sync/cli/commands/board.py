"""Board inspection commands for kanban-sync CLI."""

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from kanban_sync.cli.app import app
from kanban_sync.cli.commands.command_utils import get_board_persistence, run_with_cleanup
from kanban_sync.config import ConfigManager
from kanban_sync.schemas.base import Board
from kanban_sync.services.exceptions import StorageError

console = Console()

board_app = typer.Typer(help="Inspect and repair boards on disk")
app.add_typer(board_app, name="board")


def build_board_tree(board: Board) -> Tree:
    tree = Tree(f"[bold]{board.name}[/bold] [dim]({board.id})[/dim]")
    for column in board.columns:
        limit = f"/{column.limit}" if column.limit else ""
        branch = tree.add(
            f"[cyan]{column.name}[/cyan] [dim]#{column.position} {len(column.tasks)}{limit}[/dim]"
        )
        for task in column.tasks:
            branch.add(f"{task.id} {task.title}")
    return tree


@board_app.command("list")
def list_boards() -> None:
    """List boards under the boards root."""
    config = ConfigManager().config
    persistence = get_board_persistence(config)
    boards = run_with_cleanup(persistence.load_all_boards())

    if not boards:
        console.print(f"No boards found in {persistence.boards_dir}")
        return

    table = Table(title=f"Boards in {persistence.boards_dir}")
    table.add_column("Name", style="cyan")
    table.add_column("Id", style="dim")
    table.add_column("Columns", justify="right")
    table.add_column("Tasks", justify="right")

    for board in boards:
        task_count = sum(len(column.tasks) for column in board.columns)
        table.add_row(board.name, board.id, str(len(board.columns)), str(task_count))

    console.print(table)


@board_app.command("show")
def show_board(name: str = typer.Argument(..., help="Board name")) -> None:
    """Show a board's columns and tasks."""
    persistence = get_board_persistence(ConfigManager().config)
    board = run_with_cleanup(persistence.load_board(name))

    if board is None:
        console.print(f"[red]Board not found: {name}[/red]")
        raise typer.Exit(1)

    console.print(build_board_tree(board))


@board_app.command("cleanup")
def cleanup_board(name: str = typer.Argument(..., help="Board name")) -> None:
    """Re-save a board, removing orphaned and duplicate task files."""
    persistence = get_board_persistence(ConfigManager().config)

    async def _cleanup() -> bool:
        board = await persistence.load_board(name)
        if board is None:
            return False
        await persistence.save_board(board)
        return True

    try:
        found = run_with_cleanup(_cleanup())
    except StorageError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not found:
        console.print(f"[red]Board not found: {name}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Board '{name}' cleaned up[/green]")
