"""Passive records for boards, columns, tasks and parents.

These mirror what is stored on disk. They carry no persistence logic; the
board persistence service reads and writes them.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, Set

from dateparser import parse
from pydantic import BaseModel, BeforeValidator, Field, model_validator

from kanban_sync.utils import generate_id_from_name


def now() -> datetime:
    return datetime.now().astimezone()


def parse_timestamp(value: Any) -> Any:
    """Accept datetimes, dates, ISO strings and human friendly strings.

    Front-matter edited by hand may contain ``2024-01-15``, ``Jan 15, 2024`` or
    ``2024-01-15 10:00 AM``; all of them become datetimes.
    """
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            parsed = parse(text)
            if parsed is None:
                raise ValueError(f"Unrecognized timestamp: {value!r}")
            return parsed
    return value


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
OptionalTimestamp = Annotated[Optional[datetime], BeforeValidator(parse_timestamp)]


def parse_clock(value: Any) -> Any:
    """Turn YAML base-60 integers back into ``H:MM`` strings.

    PyYAML follows YAML 1.1, where an unquoted ``1:30`` is the integer 90.

    Example:
        >>> parse_clock(90)
        '1:30'
    """
    if isinstance(value, int) and not isinstance(value, bool):
        hours, minutes = divmod(value, 60)
        return f"{hours}:{minutes:02d}"
    return value


Clock = Annotated[Optional[str], BeforeValidator(parse_clock)]


class Parent(BaseModel):
    """A board-level grouping tag that tasks can point at."""

    id: str = ""
    name: str = ""
    color: str = "blue"
    created_at: Timestamp = Field(default_factory=now)

    @model_validator(mode="after")
    def derive_id(self) -> "Parent":
        if not self.id:
            self.id = generate_id_from_name(self.name)
        return self


class Task(BaseModel):
    """A task stored as ``<column>/tasks/<id>-<title>.md``."""

    id: str
    title: str
    description: str = ""
    column_id: Optional[str] = None
    parent_id: Optional[str] = None
    created_at: Timestamp = Field(default_factory=now)
    moved_in_progress_at: OptionalTimestamp = None
    moved_in_done_at: OptionalTimestamp = None
    worked_on_for: Clock = None  # "HH:MM"
    file_path: Optional[Path] = None

    # Unknown front-matter keys, preserved on save
    extra: Dict[str, Any] = Field(default_factory=dict)

    def clear_timing(self) -> None:
        self.moved_in_progress_at = None
        self.moved_in_done_at = None
        self.worked_on_for = None


class Column(BaseModel):
    """A column directory holding ``column.md`` and a ``tasks/`` folder."""

    id: str = ""
    name: str
    position: int = 0
    limit: Optional[int] = None
    created_at: Timestamp = Field(default_factory=now)
    tasks: List[Task] = Field(default_factory=list)
    file_path: Optional[Path] = None

    # Ids of task files that exist on disk but failed validation on load
    skipped_ids: Set[str] = Field(default_factory=set, exclude=True)

    @model_validator(mode="after")
    def derive_id(self) -> "Column":
        if not self.id:
            self.id = generate_id_from_name(self.name)
        return self

    def get_task(self, task_id: str) -> Optional[Task]:
        return next((task for task in self.tasks if task.id == task_id), None)


class Board(BaseModel):
    """A board directory holding ``kanban.md`` and one directory per column."""

    id: str = ""
    name: str
    description: str = ""
    created_at: Timestamp = Field(default_factory=now)
    columns: List[Column] = Field(default_factory=list)
    parents: List[Parent] = Field(default_factory=list)
    file_path: Optional[Path] = None

    @model_validator(mode="after")
    def derive_id(self) -> "Board":
        if not self.id:
            self.id = generate_id_from_name(self.name)
        return self

    def add_column(self, name: str, position: Optional[int] = None) -> Column:
        if position is None:
            position = max((column.position for column in self.columns), default=-1) + 1
        column = Column(name=name, position=position)
        self.columns.append(column)
        return column

    def add_parent(self, name: str, color: str = "blue") -> Parent:
        parent = Parent(name=name, color=color)
        self.parents.append(parent)
        return parent

    def get_column(self, column_id: str) -> Optional[Column]:
        return next((column for column in self.columns if column.id == column_id), None)

    def find_task(self, task_id: str) -> Optional[tuple[Column, Task]]:
        for column in self.columns:
            task = column.get_task(task_id)
            if task is not None:
                return column, task
        return None
