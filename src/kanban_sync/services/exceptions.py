"""Errors raised by the storage layer.

Read and lookup paths never raise for missing files; they return None, False
or an empty collection. Only write paths and whole-board operations raise.
"""

from pathlib import Path
from typing import Optional


class StorageError(Exception):
    """Base class for storage failures."""


class StoragePermissionError(StorageError):
    """Raised when the OS refuses a write or directory creation."""

    def __init__(self, path: Path | str, action: str = "write to"):
        self.path = Path(path)
        self.action = action
        super().__init__(
            f"Permission denied: cannot {action} {path}. "
            f"Grant write access to this location or choose another boards directory."
        )


class FileOperationError(StorageError):
    """Raised for write-path I/O failures other than permission problems."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"{message}: {path}")


class MarkdownParseError(StorageError):
    """Raised when a markdown file has unreadable front-matter."""

    def __init__(self, path: Optional[Path | str], message: str):
        self.path = Path(path) if path is not None else None
        super().__init__(f"Failed to parse {path}: {message}")


class TaskSaveError(StorageError):
    """Raised when a task could not be written to its column."""


class BoardSaveError(StorageError):
    """Raised when saving a board fails part way. Already-written columns stay on disk."""
