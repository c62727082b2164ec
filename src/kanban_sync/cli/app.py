from typing import Optional

import typer

import kanban_sync
from kanban_sync.config import init_cli_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        typer.echo(f"kanban-sync version: {kanban_sync.__version__}")
        raise typer.Exit()


app = typer.Typer(name="kanban-sync", help="Keep markdown kanban boards in sync with disk")


@app.callback()
def app_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Kanban boards stored as markdown files."""
    # The watch command sets up its own stderr logging
    if ctx.invoked_subcommand != "watch":
        init_cli_logging()
