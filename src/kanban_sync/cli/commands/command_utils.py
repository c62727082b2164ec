"""Shared wiring for CLI commands."""

import asyncio
from pathlib import Path
from typing import Any, Coroutine, TypeVar

from kanban_sync.config import KanbanSyncConfig
from kanban_sync.markdown.parser import MarkdownParser
from kanban_sync.services.board_persistence import BoardPersistence
from kanban_sync.services.entity_file_resolver import EntityFileResolver
from kanban_sync.services.file_service import FileService
from kanban_sync.services.storage_root import StorageRoot

T = TypeVar("T")


def run_with_cleanup(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion from a synchronous command."""
    return asyncio.run(coro)


def get_storage_root(config: KanbanSyncConfig) -> StorageRoot:
    custom_root = Path(config.boards_directory) if config.boards_directory else None
    return StorageRoot(config.default_boards_path, custom_root)


def get_board_persistence(config: KanbanSyncConfig) -> BoardPersistence:
    file_service = FileService()
    parser = MarkdownParser(file_service)
    resolver = EntityFileResolver(file_service, parser, max_retries=config.max_rename_retries)
    return BoardPersistence(file_service, parser, resolver, get_storage_root(config))
