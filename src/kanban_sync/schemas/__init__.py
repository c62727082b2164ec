"""Pydantic records for boards and agenda items."""

from kanban_sync.schemas.agenda import AgendaItem
from kanban_sync.schemas.base import Board, Column, Parent, Task

__all__ = ["AgendaItem", "Board", "Column", "Parent", "Task"]
