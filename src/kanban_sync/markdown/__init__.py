"""Front-matter codec for board, column, task and agenda files."""

from kanban_sync.markdown.parser import MarkdownParser
from kanban_sync.markdown.schemas import MarkdownDocument

__all__ = ["MarkdownParser", "MarkdownDocument"]
