"""Agenda items: tasks scheduled on a calendar day."""

import secrets
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from kanban_sync.schemas.base import Timestamp, now, parse_clock


def _generate_agenda_id() -> str:
    return f"agenda-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class AgendaItem(BaseModel):
    """A task scheduled for a day, stored under ``agenda/<YYYY>/<MM>/<DD>/``."""

    id: str = Field(default_factory=_generate_agenda_id)
    project_id: str
    board_id: str
    task_id: str
    scheduled_date: str  # YYYY-MM-DD
    scheduled_time: Optional[str] = None  # HH:MM
    duration_minutes: Optional[int] = None
    task_type: str = "regular"
    meeting_data: Optional[Dict[str, Any]] = None
    notes: str = ""
    created_at: Timestamp = Field(default_factory=now)
    updated_at: Timestamp = Field(default_factory=now)
    file_path: Optional[Path] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def normalize_date(cls, value: Any) -> Any:
        # YAML turns unquoted dates into date objects
        if hasattr(value, "isoformat"):
            return value.isoformat()[:10]
        return value

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def normalize_time(cls, value: Any) -> Any:
        # Unquoted 15:00 arrives as the base-60 integer 900
        if isinstance(value, int) and not isinstance(value, bool):
            return parse_clock(value).zfill(5)
        return value

    @property
    def scheduled_datetime(self) -> Optional[datetime]:
        if not self.scheduled_date:
            return None
        time_part = self.scheduled_time or "00:00"
        try:
            return datetime.fromisoformat(f"{self.scheduled_date}T{time_part}")
        except ValueError:
            return None

    @property
    def filename(self) -> str:
        return f"{self.project_id}-{self.board_id}-{self.task_id}.md"

    def reschedule(self, scheduled_date: str, scheduled_time: Optional[str] = None) -> None:
        self.scheduled_date = scheduled_date
        if scheduled_time is not None:
            self.scheduled_time = scheduled_time
        self.updated_at = now()

    def to_frontmatter(self) -> Dict[str, Any]:
        """Metadata written to the file; unset optional fields are left out."""
        data: Dict[str, Any] = {
            "id": self.id,
            "project_id": self.project_id,
            "board_id": self.board_id,
            "task_id": self.task_id,
            "scheduled_date": self.scheduled_date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.scheduled_time:
            data["scheduled_time"] = self.scheduled_time
        if self.duration_minutes:
            data["duration_minutes"] = self.duration_minutes
        if self.task_type != "regular":
            data["task_type"] = self.task_type
        if self.meeting_data:
            data["meeting_data"] = self.meeting_data
        return data
