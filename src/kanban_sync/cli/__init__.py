"""Command line interface for kanban-sync."""
