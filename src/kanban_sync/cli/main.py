"""Main CLI entry point for kanban-sync."""  # pragma: no cover

from kanban_sync.cli.app import app  # pragma: no cover

# Register commands
from kanban_sync.cli.commands import (  # noqa: F401  # pragma: no cover
    board,
    root,
    status,
    watch,
)

if __name__ == "__main__":  # pragma: no cover
    app()
