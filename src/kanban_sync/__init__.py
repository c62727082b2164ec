"""kanban-sync - file-backed storage and synchronization for markdown kanban boards."""

# Package version
__version__ = "0.3.0"
