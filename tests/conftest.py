"""Common test fixtures."""

import os
from pathlib import Path

import pytest
import pytest_asyncio

from kanban_sync import config as config_module
from kanban_sync.config import ConfigManager, KanbanSyncConfig
from kanban_sync.markdown.parser import MarkdownParser
from kanban_sync.schemas.base import Board, Task
from kanban_sync.services.agenda_service import AgendaService
from kanban_sync.services.board_persistence import BoardPersistence
from kanban_sync.services.entity_file_resolver import EntityFileResolver
from kanban_sync.services.file_service import FileService
from kanban_sync.services.storage_root import StorageRoot


@pytest.fixture
def config_home(tmp_path, monkeypatch) -> Path:
    # Patch HOME environment variable for the duration of the test
    monkeypatch.setenv("HOME", str(tmp_path))
    # On Windows, also set USERPROFILE
    if os.name == "nt":
        monkeypatch.setenv("USERPROFILE", str(tmp_path))
    monkeypatch.setenv("KANBAN_SYNC_HOME", str(tmp_path / "kanban"))
    monkeypatch.setenv("KANBAN_SYNC_CONFIG_DIR", str(tmp_path / ".kanban-sync"))
    monkeypatch.delenv("KANBAN_SYNC_BOARDS_DIRECTORY", raising=False)
    return tmp_path


@pytest.fixture
def app_config(config_home) -> KanbanSyncConfig:
    """Create test app configuration."""
    return KanbanSyncConfig(env="test")


@pytest.fixture
def config_manager(app_config: KanbanSyncConfig, config_home: Path) -> ConfigManager:
    # Invalidate config cache to ensure clean state for each test
    config_module._CONFIG_CACHE = None

    config_manager = ConfigManager()
    config_manager.save_config(app_config)
    yield config_manager

    config_module._CONFIG_CACHE = None


@pytest.fixture
def boards_dir(app_config: KanbanSyncConfig) -> Path:
    path = app_config.boards_path
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def storage_root(app_config: KanbanSyncConfig, boards_dir: Path) -> StorageRoot:
    return StorageRoot(boards_dir)


@pytest.fixture
def file_service() -> FileService:
    return FileService()


@pytest.fixture
def parser(file_service: FileService) -> MarkdownParser:
    return MarkdownParser(file_service)


@pytest.fixture
def resolver(file_service: FileService, parser: MarkdownParser) -> EntityFileResolver:
    return EntityFileResolver(file_service, parser)


@pytest.fixture
def persistence(
    file_service: FileService,
    parser: MarkdownParser,
    resolver: EntityFileResolver,
    storage_root: StorageRoot,
) -> BoardPersistence:
    return BoardPersistence(file_service, parser, resolver, storage_root)


@pytest.fixture
def agenda_service(
    file_service: FileService, parser: MarkdownParser, storage_root: StorageRoot
) -> AgendaService:
    return AgendaService(file_service, parser, storage_root)


@pytest.fixture
def sample_board() -> Board:
    board = Board(id="b1", name="Project Alpha", description="Alpha board")
    todo = board.add_column("To Do", 0)
    board.add_column("In Progress", 1)
    board.add_column("Done", 2)
    todo.tasks.append(Task(id="MKA-1", title="Write docs", description="Docs body"))
    todo.tasks.append(Task(id="MKA-2", title="Fix bug"))
    return board


@pytest_asyncio.fixture
async def saved_board(persistence: BoardPersistence, sample_board: Board) -> Board:
    await persistence.save_board(sample_board)
    return sample_board


def write_task_file(directory: Path, name: str, task_id: str | None, body: str = "Body") -> Path:
    """Write a task file by hand, the way an external editor would."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    if task_id is None:
        path.write_text(f"# {name}\n\n{body}\n", encoding="utf-8")
    else:
        path.write_text(f"---\nid: {task_id}\n---\n# {name}\n\n{body}\n", encoding="utf-8")
    return path


@pytest.fixture
def write_task():
    return write_task_file
