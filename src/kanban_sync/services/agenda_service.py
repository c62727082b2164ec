"""Agenda storage: scheduled tasks under ``<boards root>/agenda/YYYY/MM/DD/``."""

from datetime import date, timedelta
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError

from kanban_sync.config import AGENDA_DIR_NAME, MARKDOWN_EXTENSION
from kanban_sync.markdown.parser import MarkdownParser
from kanban_sync.schemas.agenda import AgendaItem
from kanban_sync.schemas.base import Board, now
from kanban_sync.services.exceptions import MarkdownParseError
from kanban_sync.services.file_service import FileService
from kanban_sync.services.storage_root import StorageRoot


class AgendaService:
    """Reads and writes agenda items, one file per scheduled task."""

    def __init__(self, file_service: FileService, parser: MarkdownParser, storage_root: StorageRoot):
        self.file_service = file_service
        self.parser = parser
        self.agenda_dir = storage_root.root / AGENDA_DIR_NAME
        storage_root.add_observer(self)

    def on_root_changed(self, new_root: Path) -> None:
        self.agenda_dir = new_root / AGENDA_DIR_NAME

    def day_dir(self, scheduled_date: str) -> Path:
        day = date.fromisoformat(scheduled_date)
        return self.agenda_dir / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"

    def item_path(self, item: AgendaItem) -> Path:
        return self.day_dir(item.scheduled_date) / item.filename

    async def save(self, item: AgendaItem) -> Path:
        """Write an agenda item; if its date changed, the old file is removed."""
        target = self.item_path(item)
        item.updated_at = now()
        await self.parser.write(target, item.to_frontmatter(), content=item.notes)

        previous = item.file_path
        if previous is not None and previous != target:
            if await self.file_service.delete_file(previous):
                logger.debug(f"Moved agenda item {item.id}: {previous} -> {target}")

        item.file_path = target
        return target

    async def delete(self, item: AgendaItem) -> bool:
        path = item.file_path or self.item_path(item)
        deleted = await self.file_service.delete_file(path)
        if deleted:
            logger.info(f"Deleted agenda item {item.id}")
        return deleted

    async def load_for_date(self, scheduled_date: str) -> List[AgendaItem]:
        """Load items for one day, ordered by scheduled time (untimed items first)."""
        items = await self._load_directory(self.day_dir(scheduled_date))
        return sorted(items, key=lambda item: (item.scheduled_time or "", item.filename))

    async def load_for_date_range(self, start_date: str, end_date: str) -> List[AgendaItem]:
        """Load items between two dates, both inclusive."""
        start = date.fromisoformat(start_date)
        end = date.fromisoformat(end_date)

        items: List[AgendaItem] = []
        day = start
        while day <= end:
            items.extend(await self.load_for_date(day.isoformat()))
            day += timedelta(days=1)
        return items

    async def load_all(self) -> List[AgendaItem]:
        items: List[AgendaItem] = []
        for year_dir in await self.file_service.list_directories(self.agenda_dir):
            for month_dir in await self.file_service.list_directories(year_dir):
                for day_dir in await self.file_service.list_directories(month_dir):
                    items.extend(await self._load_directory(day_dir))
        return items

    async def load_by_id(self, item_id: str) -> Optional[AgendaItem]:
        return next((item for item in await self.load_all() if item.id == item_id), None)

    async def load_by_task(self, project_id: str, board_id: str, task_id: str) -> List[AgendaItem]:
        return [
            item
            for item in await self.load_all()
            if item.project_id == project_id and item.board_id == board_id and item.task_id == task_id
        ]

    async def get_orphaned(self, boards: Iterable[Board]) -> List[AgendaItem]:
        """Items whose board or task no longer exists."""
        tasks_by_board = {
            board.id: {task.id for column in board.columns for task in column.tasks}
            for board in boards
        }
        return [
            item
            for item in await self.load_all()
            if item.task_id not in tasks_by_board.get(item.board_id, set())
        ]

    async def _load_directory(self, directory: Path) -> List[AgendaItem]:
        items = []
        for path in await self.file_service.list_files(directory, f"*{MARKDOWN_EXTENSION}"):
            item = await self._load_item(path)
            if item is not None:
                items.append(item)
        return items

    async def _load_item(self, path: Path) -> Optional[AgendaItem]:
        try:
            document = await self.parser.parse_file(path)
        except MarkdownParseError as e:
            logger.warning(f"Skipping corrupted agenda file {path}: {e}")
            return None

        if document is None:
            return None

        fields = {
            key: value
            for key, value in document.metadata.items()
            if key in AgendaItem.model_fields and key not in ("notes", "file_path")
        }
        try:
            return AgendaItem(**fields, notes=document.content, file_path=path)
        except ValidationError as e:
            logger.warning(f"Skipping agenda file with invalid metadata {path}: {e}")
            return None
