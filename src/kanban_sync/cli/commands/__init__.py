"""CLI commands for kanban-sync."""

from kanban_sync.cli.commands import board, root, status, watch

__all__ = ["board", "root", "status", "watch"]
