"""Turns raw file changes into board/column/item events.

Classification is purely path based and relies on the fixed layout::

    <root>/<board>/kanban.md
    <root>/<board>/<column>/column.md
    <root>/<board>/<column>/<item>.md

Task files nested under ``<column>/tasks/`` sit one level deeper than the item
rule and are not classified.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Set

from kanban_sync.config import AGENDA_DIR_NAME, BOARD_FILENAME, COLUMN_METADATA_FILENAME, MARKDOWN_EXTENSION
from kanban_sync.sync.change_detector import ChangeKind, RawChange


class EntityType(str, Enum):
    BOARD = "board"
    COLUMN = "column"
    ITEM = "item"


class ChangeType(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class WatchEventType(str, Enum):
    BOARD_ADDED = "boardAdded"
    BOARD_DELETED = "boardDeleted"
    BOARD_CHANGED = "boardChanged"
    COLUMN_CHANGED = "columnChanged"
    ITEM_ADDED = "itemAdded"
    ITEM_CHANGED = "itemChanged"
    ITEM_DELETED = "itemDeleted"


_EVENT_TYPES = {
    (EntityType.BOARD, ChangeType.CREATED): WatchEventType.BOARD_ADDED,
    (EntityType.BOARD, ChangeType.DELETED): WatchEventType.BOARD_DELETED,
    (EntityType.BOARD, ChangeType.MODIFIED): WatchEventType.BOARD_CHANGED,
    (EntityType.COLUMN, ChangeType.CREATED): WatchEventType.COLUMN_CHANGED,
    (EntityType.COLUMN, ChangeType.MODIFIED): WatchEventType.COLUMN_CHANGED,
    (EntityType.ITEM, ChangeType.CREATED): WatchEventType.ITEM_ADDED,
    (EntityType.ITEM, ChangeType.MODIFIED): WatchEventType.ITEM_CHANGED,
    (EntityType.ITEM, ChangeType.DELETED): WatchEventType.ITEM_DELETED,
}

_CHANGE_TYPES = {
    ChangeKind.ADDED: ChangeType.CREATED,
    ChangeKind.MODIFIED: ChangeType.MODIFIED,
    ChangeKind.DELETED: ChangeType.DELETED,
}


@dataclass
class DomainEvent:
    entity_type: EntityType
    change_type: ChangeType
    file_path: str
    timestamp: datetime = field(default_factory=datetime.now)
    board_name: Optional[str] = None
    column_name: Optional[str] = None
    item_id: Optional[str] = None

    @property
    def type(self) -> WatchEventType:
        return _EVENT_TYPES[(self.entity_type, self.change_type)]


class ChangeClassifier:
    """Classifies changes relative to the watched boards root."""

    def __init__(self, root: Path, ignored: Iterable[str] = (AGENDA_DIR_NAME,)):
        self.root = Path(root)
        self.ignored: Set[str] = set(ignored)

    def on_root_changed(self, new_root: Path) -> None:
        self.root = Path(new_root)

    def classify(self, change: RawChange) -> Optional[DomainEvent]:
        """Map a raw change to a domain event.

        Returns:
            The event, or None if the path does not match the board layout
        """
        try:
            parts = Path(change.path).relative_to(self.root).parts
        except ValueError:
            return None

        if not parts or parts[0] in self.ignored:
            return None

        change_type = _CHANGE_TYPES[change.kind]
        board_name = parts[0]

        if len(parts) == 1:
            if change.is_directory and change_type != ChangeType.MODIFIED:
                return self._event(EntityType.BOARD, change_type, change, board_name)
            return None

        if len(parts) == 2:
            if parts[1] == BOARD_FILENAME and change_type == ChangeType.MODIFIED:
                return self._event(EntityType.BOARD, change_type, change, board_name)
            return None

        if len(parts) != 3:
            return None

        column_name, file_name = parts[1], parts[2]

        if file_name == COLUMN_METADATA_FILENAME:
            if change_type == ChangeType.DELETED:
                return None
            return self._event(EntityType.COLUMN, change_type, change, board_name, column_name)

        if file_name.endswith(MARKDOWN_EXTENSION):
            item_id = file_name[: -len(MARKDOWN_EXTENSION)]
            return self._event(EntityType.ITEM, change_type, change, board_name, column_name, item_id)

        return None

    def classify_all(self, changes: Iterable[RawChange]) -> list[DomainEvent]:
        events = []
        for change in changes:
            event = self.classify(change)
            if event is not None:
                events.append(event)
        return events

    @staticmethod
    def _event(
        entity_type: EntityType,
        change_type: ChangeType,
        change: RawChange,
        board_name: str,
        column_name: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> DomainEvent:
        return DomainEvent(
            entity_type=entity_type,
            change_type=change_type,
            file_path=change.path,
            board_name=board_name,
            column_name=column_name,
            item_id=item_id,
        )
