"""Parser and writer for markdown files with YAML front-matter.

Uses python-frontmatter for the metadata block. The first level-one heading of
the body is treated as the entity title; the rest of the body is its
description.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

import frontmatter
import yaml
from loguru import logger

from kanban_sync.file_utils import strip_bom
from kanban_sync.markdown.schemas import MarkdownDocument
from kanban_sync.services.exceptions import MarkdownParseError
from kanban_sync.services.file_service import FileService


def normalize_frontmatter_value(value: Any) -> Any:
    """Normalize YAML-native dates to ISO strings.

    PyYAML turns ``2025-10-24`` into a ``date`` and full timestamps into
    ``datetime`` objects. Everything downstream expects strings for these, while
    numbers (column positions, limits) keep their native types.

    Example:
        >>> normalize_frontmatter_value([date(2025, 10, 24), "tag", 3])
        ['2025-10-24', 'tag', 3]
    """
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [normalize_frontmatter_value(item) for item in value]
    if isinstance(value, dict):
        return {key: normalize_frontmatter_value(val) for key, val in value.items()}
    return value


def normalize_frontmatter_metadata(metadata: dict) -> dict:
    return {key: normalize_frontmatter_value(value) for key, value in metadata.items()}


def split_title(body: str) -> tuple[Optional[str], str]:
    """Split a leading ``# Title`` heading off a markdown body."""
    stripped = body.lstrip()
    if not stripped.startswith("# "):
        return None, body.strip()

    first_line, _, rest = stripped.partition("\n")
    return first_line[2:].strip() or None, rest.strip()


def _serializable(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset fields and render dates so the YAML stays plain."""
    result = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, dict):
            value = _serializable(value)
        elif isinstance(value, list):
            value = [_serializable(item) if isinstance(item, dict) else item for item in value]
        result[key] = normalize_frontmatter_value(value)
    return result


class MarkdownParser:
    """Reads and writes front-matter markdown files through a FileService."""

    def __init__(self, file_service: FileService):
        self.file_service = file_service

    def parse_content(self, content: str, file_path: Optional[Path] = None) -> MarkdownDocument:
        """Parse markdown text into a document.

        Raises:
            MarkdownParseError: If the front-matter block is not a valid YAML mapping
        """
        content = strip_bom(content)
        try:
            post = frontmatter.loads(content)
        except (yaml.YAMLError, ValueError, TypeError) as e:
            raise MarkdownParseError(file_path, str(e)) from e

        title, body = split_title(post.content)
        metadata = normalize_frontmatter_metadata(post.metadata)

        # An explicit title in front-matter wins over the heading
        if metadata.get("title"):
            title = str(metadata["title"])

        return MarkdownDocument(metadata=metadata, title=title, content=body, file_path=file_path)

    async def parse_file(self, path: Path) -> Optional[MarkdownDocument]:
        """Parse a markdown file.

        Returns:
            The parsed document, or None if the file does not exist (or vanished)

        Raises:
            MarkdownParseError: If the file is not UTF-8 text or the front-matter is malformed
        """
        try:
            content = await self.file_service.read_file(path)
        except UnicodeDecodeError as e:
            raise MarkdownParseError(path, f"not valid UTF-8 text ({e.reason})") from e
        if content is None:
            return None
        return self.parse_content(content, file_path=path)

    async def read_entity_id(self, path: Path) -> Optional[str]:
        """Resolve the logical id bound to a file: front-matter ``id`` or the filename stem.

        Returns:
            The id, or None if the file no longer exists

        Raises:
            MarkdownParseError: If the front-matter is malformed
        """
        document = await self.parse_file(path)
        if document is None:
            return None
        return document.entity_id

    def dump(self, metadata: Dict[str, Any], title: Optional[str] = None, content: str = "") -> str:
        """Render metadata, title and body into a markdown file body."""
        body = content.strip()
        if title:
            body = f"# {title}\n\n{body}" if body else f"# {title}"

        post = frontmatter.Post(body, **_serializable(metadata))
        return frontmatter.dumps(post, sort_keys=False) + "\n"

    async def write(
        self,
        path: Path,
        metadata: Dict[str, Any],
        title: Optional[str] = None,
        content: str = "",
    ) -> None:
        """Write a front-matter markdown file."""
        await self.file_service.write_file(path, self.dump(metadata, title, content))
        logger.trace(f"Wrote markdown file: {path}")
