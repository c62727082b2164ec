"""Schemas for parsed markdown documents."""

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MarkdownDocument(BaseModel):
    """A markdown file split into front-matter, heading title and body."""

    metadata: Dict[str, Any] = Field(default_factory=dict)
    title: Optional[str] = None
    content: str = ""
    file_path: Optional[Path] = None

    @property
    def entity_id(self) -> Optional[str]:
        """Declared id, falling back to the filename stem."""
        declared = self.metadata.get("id")
        if declared not in (None, ""):
            return str(declared)
        if self.file_path is not None:
            return self.file_path.stem
        return None
