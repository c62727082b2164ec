"""Utility functions for kanban-sync."""

import os
import re
import sys
import unicodedata
from pathlib import Path
from typing import Optional

from loguru import logger

# Slugs feed directory and file names; keep them comfortably under path limits
MAX_SLUG_LENGTH = 60

LOG_FILE_NAME = "kanban-sync.log"


def generate_slug(name: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Generate a filesystem-safe slug from a display name.

    Args:
        name: Display name to convert (board, column or task title)
        max_length: Maximum slug length, trailing separators are trimmed after cutting

    Returns:
        Lowercase slug with words joined by hyphens, or "untitled" for empty input

    Examples:
        >>> generate_slug("In Progress")
        'in-progress'
        >>> generate_slug("Fix: crash on  start!")
        'fix-crash-on-start'
        >>> generate_slug("Café déjà vu")
        'cafe-deja-vu'
    """
    # Strip accents so "Café" and "Cafe" land on the same directory
    normalized = unicodedata.normalize("NFKD", name)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")

    lowered = ascii_text.lower()
    lowered = re.sub(r"[_\s]+", "-", lowered)
    lowered = re.sub(r"[^a-z0-9-]", "", lowered)
    lowered = re.sub(r"-{2,}", "-", lowered).strip("-")

    if max_length and len(lowered) > max_length:
        lowered = lowered[:max_length].rstrip("-")

    return lowered or "untitled"


def generate_id_from_name(name: str) -> str:
    """Derive a stable id from a name, used when a file carries no explicit id."""
    return generate_slug(name)


def task_filename_stem(task_id: str, title: str) -> str:
    """Build the stem of a task file: ``{id-lowercased}-{title-slug}``."""
    return f"{task_id.lower()}-{generate_slug(title)}"


def format_column_name(dir_name: str) -> str:
    """Turn a column directory name back into a display name.

    Examples:
        >>> format_column_name("to-do")
        'To Do'
        >>> format_column_name("in-progress")
        'In Progress'
    """
    return " ".join(part.capitalize() for part in dir_name.replace("_", "-").split("-") if part)


def normalize_column_id(column_id: str) -> str:
    """Normalize a column id for comparisons (``in_progress`` == ``in-progress``)."""
    return column_id.replace("_", "-").lower()


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_to_stdout: bool = False,
    log_dir: Optional[Path] = None,
) -> None:  # pragma: no cover
    """Configure loguru sinks.

    Args:
        log_level: Minimum level for every sink
        log_to_file: Write to ``<log_dir>/kanban-sync.log`` with rotation
        log_to_stdout: Write to stderr, used by the watch command
        log_dir: Directory for the log file, defaults to ``~/.kanban-sync``
    """
    # Remove the default handler and any sinks from a previous call
    logger.remove()

    if log_to_file:
        directory = log_dir or Path(
            os.getenv("KANBAN_SYNC_CONFIG_DIR", Path.home() / ".kanban-sync")
        )
        directory.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(directory / LOG_FILE_NAME),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=True,
            colorize=False,
        )

    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, backtrace=True, diagnose=False, colorize=True)

    logger.debug(f"Logging configured: level={log_level}, file={log_to_file}, stdout={log_to_stdout}")
