"""Board persistence: save, load, move and delete boards and tasks on disk.

Layout under the boards root::

    <board-slug>/
        kanban.md
        <column-slug>/
            column.md
            tasks/
                <id-lowercase>-<title-slug>.md

Multi-step operations are not transactional. A board save that fails part way
leaves already-written columns on disk, and a task move is a write followed
by a delete: a crash between the two leaves the task in both columns.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from loguru import logger
from pydantic import ValidationError

from kanban_sync.config import (
    AGENDA_DIR_NAME,
    BOARD_FILENAME,
    COLUMN_METADATA_FILENAME,
    TASKS_DIR_NAME,
)
from kanban_sync.markdown.parser import MarkdownParser
from kanban_sync.markdown.schemas import MarkdownDocument
from kanban_sync.schemas.base import Board, Column, Parent, Task, now
from kanban_sync.services.entity_file_resolver import CleanupReport, EntityFileResolver
from kanban_sync.services.exceptions import (
    BoardSaveError,
    MarkdownParseError,
    StorageError,
    StoragePermissionError,
    TaskSaveError,
)
from kanban_sync.services.file_service import FileService
from kanban_sync.services.storage_root import StorageRoot
from kanban_sync.utils import (
    format_column_name,
    generate_id_from_name,
    generate_slug,
    normalize_column_id,
    task_filename_stem,
)

IN_PROGRESS_COLUMN_ID = "in-progress"
DONE_COLUMN_ID = "done"

# Task front-matter keys mapped onto Task fields; anything else is kept in Task.extra
TASK_FIELDS = {
    "id",
    "title",
    "description",
    "parent_id",
    "created_at",
    "moved_in_progress_at",
    "moved_in_done_at",
    "worked_on_for",
}


def normalize_task_timing(task: Task, column_id: str) -> None:
    """Clear timing fields that do not apply to the task's current column.

    "Entered progress" only means something in the progress or done columns;
    "entered done" and "time worked" only in the done column.
    """
    normalized = normalize_column_id(column_id)
    if normalized == DONE_COLUMN_ID:
        return
    if normalized == IN_PROGRESS_COLUMN_ID:
        task.moved_in_done_at = None
        task.worked_on_for = None
        return
    task.clear_timing()


class BoardPersistence:
    """Saves and loads whole boards and single tasks."""

    def __init__(
        self,
        file_service: FileService,
        parser: MarkdownParser,
        resolver: EntityFileResolver,
        storage_root: StorageRoot,
    ):
        self.file_service = file_service
        self.parser = parser
        self.resolver = resolver
        self.boards_dir = storage_root.root

        # Register as observer to follow boards root redirection
        storage_root.add_observer(self)

    def on_root_changed(self, new_root: Path) -> None:
        logger.info(f"BoardPersistence: boards directory changed from {self.boards_dir} to {new_root}")
        self.boards_dir = new_root

    # Paths

    def board_dir(self, board_name: str) -> Path:
        return self.boards_dir / generate_slug(board_name)

    def board_file_path(self, board_name: str) -> Path:
        return self.board_dir(board_name) / BOARD_FILENAME

    def column_dir(self, board_name: str, column_name: str) -> Path:
        return self.board_dir(board_name) / generate_slug(column_name)

    def tasks_dir(self, board_name: str, column_name: str) -> Path:
        return self.column_dir(board_name, column_name) / TASKS_DIR_NAME

    # Tasks

    async def save_task(self, board_name: str, column_name: str, task: Task) -> Path:
        """Write a task into a column, renaming its existing file to match the title.

        Returns:
            Path of the written file

        Raises:
            StoragePermissionError: If the column is not writable
            TaskSaveError: For any other failure
        """
        tasks_dir = self.tasks_dir(board_name, column_name)
        try:
            await self.file_service.ensure_directory(tasks_dir)

            target = tasks_dir / f"{task_filename_stem(task.id, task.title)}.md"
            existing = await self._find_task_file(tasks_dir, task.id)

            if existing is None:
                final_path = tasks_dir / await self.resolver.resolve_unique_name(target, task.id)
            elif existing.name == target.name:
                final_path = existing
            else:
                final_path = tasks_dir / await self.resolver.resolve_unique_name(target, task.id)
                if final_path != existing:
                    if await self.file_service.rename_file(existing, final_path):
                        logger.debug(f"Renamed task file {existing.name} -> {final_path.name}")
                    else:
                        logger.warning(
                            f"Could not rename {existing} to {final_path}, writing in place"
                        )
                        final_path = existing

            await self.parser.write(
                final_path, self._task_metadata(task), task.title, task.description
            )
        except StoragePermissionError:
            raise
        except (StorageError, OSError) as e:
            raise TaskSaveError(
                f'Failed to save task "{task.title}" to column "{column_name}": {e}'
            ) from e

        task.file_path = final_path
        return final_path

    async def delete_task(self, board_name: str, column_name: str, task_id: str) -> bool:
        """Delete a task's file. Returns False if no file is bound to the id."""
        task_file = await self._find_task_file(self.tasks_dir(board_name, column_name), task_id)
        if task_file is None:
            logger.debug(f"Task {task_id} not found in column {column_name}")
            return False
        return await self.file_service.delete_file(task_file)

    async def move_task_between_columns(
        self,
        board_name: str,
        task: Task,
        from_column: str,
        to_column: str,
    ) -> bool:
        """Move a task: write it into the destination, then delete the source.

        If the source cannot be deleted, the destination copy is deleted again as
        a compensating step. This is not a transaction; a crash between the two
        steps leaves the task in both columns.

        Returns:
            True if the task ended up only in the destination column
        """
        if generate_slug(from_column) == generate_slug(to_column):
            await self.save_task(board_name, to_column, task)
            return True

        source = await self._find_task_file(self.tasks_dir(board_name, from_column), task.id)
        if source is None:
            logger.warning(f"Cannot move task {task.id}: not found in column {from_column}")
            return False

        try:
            destination = await self.save_task(board_name, to_column, task)
        except TaskSaveError as e:
            logger.error(f"Failed to move task {task.id} from {from_column} to {to_column}: {e}")
            return False

        if not await self.file_service.is_file(destination):
            logger.error(f"Task {task.id} missing from {to_column} after write, keeping source")
            return False

        if await self.file_service.delete_file(source):
            logger.info(f"Moved task {task.id} from {from_column} to {to_column}")
            return True

        if not await self.file_service.exists(source):
            # Removed externally in the meantime; the move still stands
            return True

        logger.error(f"Failed to delete {source} after copying task {task.id} to {to_column}")
        if await self.file_service.delete_file(destination):
            logger.warning(f"Rolled back copy of task {task.id} in {to_column}")
        else:
            logger.error(f"Rollback failed, task {task.id} now exists in both columns")
        return False

    # Columns

    async def save_column_metadata(self, board_name: str, column: Column) -> Path:
        """Write ``column.md`` for a column."""
        column_dir = self.column_dir(board_name, column.name)
        await self.file_service.ensure_directory(column_dir)

        metadata: Dict[str, Any] = {
            "id": column.id,
            "name": column.name,
            "position": column.position,
            "limit": column.limit,
            "created_at": column.created_at or now(),
        }
        metadata_file = column_dir / COLUMN_METADATA_FILENAME
        await self.parser.write(metadata_file, metadata, column.name)
        column.file_path = metadata_file
        return metadata_file

    async def cleanup_column(
        self, board_name: str, column_name: str, current_task_ids: Set[str]
    ) -> CleanupReport:
        """Remove orphaned and duplicate task files in a column."""
        return await self.resolver.cleanup(
            self.tasks_dir(board_name, column_name), current_task_ids
        )

    # Boards

    async def list_board_directories(self) -> List[Path]:
        directories = await self.file_service.list_directories(self.boards_dir)
        return [path for path in directories if path.name != AGENDA_DIR_NAME]

    async def load_all_boards(self) -> List[Board]:
        """Load every board directory that has a ``kanban.md``."""
        boards = []
        for board_dir in await self.list_board_directories():
            board = await self.load_board_from_directory(board_dir)
            if board is not None:
                boards.append(board)

        logger.debug(f"Loaded {len(boards)} boards from {self.boards_dir}")
        return boards

    async def load_board(self, board_name: str) -> Optional[Board]:
        """Load a board by name (case-insensitive)."""
        board = await self.load_board_from_directory(self.board_dir(board_name))
        if board is not None and board.name.lower() == board_name.lower():
            return board

        for board in await self.load_all_boards():
            if board.name.lower() == board_name.lower():
                return board

        logger.debug(f"Board not found by name: {board_name}")
        return None

    async def load_board_by_id(self, board_id: str) -> Optional[Board]:
        for board in await self.load_all_boards():
            if board.id == board_id:
                return board
        logger.debug(f"Board not found by id: {board_id}")
        return None

    async def list_board_names(self) -> List[str]:
        return [board.name for board in await self.load_all_boards()]

    async def load_board_from_directory(self, board_dir: Path) -> Optional[Board]:
        """Load a board, its columns and tasks from a board directory.

        Returns:
            The board, or None if there is no readable ``kanban.md``
        """
        board_file = board_dir / BOARD_FILENAME
        try:
            document = await self.parser.parse_file(board_file)
        except MarkdownParseError as e:
            logger.warning(f"Skipping board with unreadable kanban.md: {board_file} ({e})")
            return None

        if document is None:
            return None

        metadata = document.metadata
        try:
            board = Board(
                id=str(metadata.get("id") or board_dir.name),
                name=str(metadata.get("name") or document.title or format_column_name(board_dir.name)),
                description=str(metadata.get("description") or document.content or ""),
                created_at=metadata.get("created_at") or now(),
                parents=self._parse_parents(metadata.get("parents")),
                file_path=board_file,
            )
        except ValidationError as e:
            logger.warning(f"Skipping board with invalid metadata: {board_file} ({e})")
            return None

        board.columns = await self._load_columns(board_dir)
        return board

    async def save_board(self, board: Board) -> Path:
        """Save board metadata, columns and tasks.

        Column directories no longer present on the board are removed, and each
        column's task files are cleaned up against the in-memory task list.

        Raises:
            StoragePermissionError: If the boards directory is not writable
            BoardSaveError: If the save fails part way; written columns are not rolled back
        """
        board_dir = self.board_dir(board.name)
        board_file = board_dir / BOARD_FILENAME
        logger.info(f"Saving board: {board.name}")

        try:
            await self.file_service.ensure_directory(board_dir)

            metadata = {
                "id": board.id,
                "name": board.name,
                "description": board.description,
                "created_at": board.created_at,
                "parents": [parent.model_dump(mode="json") for parent in board.parents],
            }
            await self.parser.write(board_file, metadata, board.name, board.description)
            await self._save_columns(board, board_dir)
        except StoragePermissionError:
            raise
        except (StorageError, OSError) as e:
            raise BoardSaveError(f'Failed to save board "{board.name}": {e}') from e

        board.file_path = board_file
        logger.info(f"Saved board: {board.name}, columns={len(board.columns)}")
        return board_file

    async def delete_board(self, board_id: str) -> bool:
        board = await self.load_board_by_id(board_id)
        if board is None or board.file_path is None:
            logger.warning(f"Cannot delete non-existent board: {board_id}")
            return False

        deleted = await self.file_service.delete_directory(board.file_path.parent)
        if deleted:
            logger.info(f"Deleted board: {board.name}")
        return deleted

    def create_sample_board(self, name: str) -> Board:
        """Build (but do not save) a board with the default three columns."""
        board = Board(name=name, description="Sample board for getting started")
        board.add_column("To Do", 0)
        board.add_column("In Progress", 1)
        board.add_column("Done", 2)
        board.add_parent("Sample Project", "blue")
        return board

    # Internals

    async def _find_task_file(self, tasks_dir: Path, task_id: str) -> Optional[Path]:
        return await self.resolver.find_owned(tasks_dir, task_id)

    async def _save_columns(self, board: Board, board_dir: Path) -> None:
        wanted = {generate_slug(column.name) for column in board.columns}
        for existing_dir in await self.file_service.list_directories(board_dir):
            if existing_dir.name not in wanted:
                logger.info(f"Removing column directory no longer on board: {existing_dir}")
                await self.file_service.delete_directory(existing_dir)

        for column in board.columns:
            await self.save_column_metadata(board.name, column)
            for task in column.tasks:
                await self.save_task(board.name, column.name, task)
            current_ids = {task.id for task in column.tasks} | column.skipped_ids
            await self.cleanup_column(board.name, column.name, current_ids)

    async def _load_columns(self, board_dir: Path) -> List[Column]:
        positioned: List[tuple[Column, Path]] = []
        unpositioned: List[tuple[Column, Path]] = []
        used_positions: Set[int] = set()

        # Directory listing is sorted by name, which fixes the fill order below
        for column_dir in await self.file_service.list_directories(board_dir):
            column, position = await self._read_column(column_dir)
            if position is not None and position not in used_positions:
                column.position = position
                used_positions.add(position)
                positioned.append((column, column_dir))
            else:
                if position is not None:
                    logger.warning(
                        f"Duplicate column position {position} in {column_dir}, reassigning"
                    )
                unpositioned.append((column, column_dir))

        next_position = 0
        for column, _ in unpositioned:
            while next_position in used_positions:
                next_position += 1
            column.position = next_position
            used_positions.add(next_position)

        columns = []
        for column, column_dir in positioned + unpositioned:
            column.tasks = await self._load_tasks(column, column_dir / TASKS_DIR_NAME)
            columns.append(column)

        columns.sort(key=lambda column: (column.position, column.name))
        return columns

    async def _read_column(self, column_dir: Path) -> tuple[Column, Optional[int]]:
        """Read a column's metadata. Returns the column and its explicit position, if any."""
        metadata_file = column_dir / COLUMN_METADATA_FILENAME
        fallback = Column(
            id=column_dir.name, name=format_column_name(column_dir.name), file_path=column_dir
        )

        try:
            document = await self.parser.parse_file(metadata_file)
        except MarkdownParseError as e:
            logger.warning(f"Using defaults for column with unreadable metadata: {metadata_file} ({e})")
            return fallback, None

        if document is None or not document.metadata:
            return fallback, None

        metadata = document.metadata
        try:
            column = Column(
                id=str(metadata.get("id") or column_dir.name),
                name=str(metadata.get("name") or document.title or fallback.name),
                limit=metadata.get("limit"),
                created_at=metadata.get("created_at") or now(),
                file_path=metadata_file,
            )
        except ValidationError as e:
            logger.warning(f"Using defaults for column with invalid metadata: {metadata_file} ({e})")
            return fallback, None

        return column, self._parse_position(metadata.get("position"))

    async def _load_tasks(self, column: Column, tasks_dir: Path) -> List[Task]:
        tasks = []
        for task_file in await self.resolver.list_entity_files(tasks_dir):
            try:
                document = await self.parser.parse_file(task_file)
            except MarkdownParseError as e:
                logger.warning(f"Skipping corrupted task file {task_file}: {e}")
                continue

            if document is None:
                # Vanished between listing and reading
                continue

            try:
                task = self._task_from_document(document, task_file, column)
            except ValidationError as e:
                logger.warning(f"Skipping task file with invalid metadata {task_file}: {e}")
                # Keep the file on disk; the next cleanup must not treat it as an orphan
                column.skipped_ids.add(document.entity_id)
                continue

            normalize_task_timing(task, column.id)
            tasks.append(task)
        return await self._drop_duplicate_tasks(tasks)

    async def _drop_duplicate_tasks(self, tasks: List[Task]) -> List[Task]:
        """Keep one task per id; the most recently modified file wins."""
        ids = [task.id for task in tasks]
        if len(set(ids)) == len(ids):
            return tasks

        newest: Dict[str, tuple[int, Task]] = {}
        for task in tasks:
            mtime = await self.file_service.stat(task.file_path) if task.file_path else None
            stamp = mtime if mtime is not None else -1
            current = newest.get(task.id)
            if current is None or stamp > current[0]:
                newest[task.id] = (stamp, task)

        kept = [task for task in tasks if newest[task.id][1] is task]
        for task in tasks:
            if newest[task.id][1] is not task:
                logger.warning(f"Ignoring duplicate file for task {task.id}: {task.file_path}")
        return kept

    def _task_from_document(self, document: MarkdownDocument, task_file: Path, column: Column) -> Task:
        metadata = document.metadata
        return Task(
            id=str(metadata.get("id") or generate_id_from_name(task_file.stem)),
            title=document.title or task_file.stem,
            description=str(metadata.get("description") or document.content or ""),
            column_id=column.id,
            parent_id=metadata.get("parent_id"),
            created_at=metadata.get("created_at") or now(),
            moved_in_progress_at=metadata.get("moved_in_progress_at"),
            moved_in_done_at=metadata.get("moved_in_done_at"),
            worked_on_for=metadata.get("worked_on_for"),
            file_path=task_file,
            extra={key: value for key, value in metadata.items() if key not in TASK_FIELDS},
        )

    def _task_metadata(self, task: Task) -> Dict[str, Any]:
        metadata: Dict[str, Any] = dict(task.extra)
        metadata.update(
            {
                "id": task.id,
                "parent_id": task.parent_id,
                "created_at": task.created_at or now(),
                "moved_in_progress_at": task.moved_in_progress_at,
                "moved_in_done_at": task.moved_in_done_at,
                "worked_on_for": task.worked_on_for,
            }
        )
        return metadata

    def _parse_parents(self, raw: Any) -> List[Parent]:
        parents = []
        for entry in raw or []:
            if not isinstance(entry, dict):
                continue
            try:
                parents.append(
                    Parent(
                        id=str(entry.get("id") or ""),
                        name=str(entry.get("name") or ""),
                        color=str(entry.get("color") or "blue"),
                        created_at=entry.get("created_at") or now(),
                    )
                )
            except ValidationError as e:
                logger.warning(f"Skipping invalid parent entry {entry!r}: {e}")
        return parents

    @staticmethod
    def _parse_position(value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            position = int(value)
        except (TypeError, ValueError):
            return None
        return position if position >= 0 else None
