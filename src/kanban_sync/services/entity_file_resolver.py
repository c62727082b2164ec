"""Resolve the physical file bound to a logical task id.

There is no index: every lookup re-derives bindings from the directory
contents. A task file is normally named ``{id-lowercased}-{title-slug}.md``;
older files without the id prefix are matched through their front-matter
``id`` (or, lacking that, their filename stem).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from loguru import logger

from kanban_sync.config import COLUMN_METADATA_FILENAME, MARKDOWN_EXTENSION
from kanban_sync.markdown.parser import MarkdownParser
from kanban_sync.services.exceptions import MarkdownParseError
from kanban_sync.services.file_service import FileService

DEFAULT_MAX_RETRIES = 100


@dataclass
class CleanupReport:
    """Files removed by a cleanup pass.

    Attributes:
        orphans: Files whose id is no longer part of the column
        duplicates: Older copies of a task that also has a newer file
        skipped: Files that could not be parsed and were left alone
    """

    orphans: List[Path] = field(default_factory=list)
    duplicates: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)

    @property
    def total_removed(self) -> int:
        return len(self.orphans) + len(self.duplicates)


class EntityFileResolver:
    """Finds, names and deduplicates task files inside a directory."""

    def __init__(
        self,
        file_service: FileService,
        parser: MarkdownParser,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.file_service = file_service
        self.parser = parser
        self.max_retries = max_retries

    async def list_entity_files(self, directory: Path) -> List[Path]:
        """List markdown files in a directory, skipping the column metadata file."""
        files = await self.file_service.list_files(directory, f"*{MARKDOWN_EXTENSION}")
        return [path for path in files if path.name != COLUMN_METADATA_FILENAME]

    async def find_by_id(self, directory: Path, entity_id: str) -> Optional[Path]:
        """Find the file bound to an id.

        Tries a case-insensitive ``{id}-`` filename prefix first across the whole
        directory, then falls back to reading each file's front-matter.

        Returns:
            Path of the first matching file, or None
        """
        files = await self.list_entity_files(directory)
        if not files:
            return None

        prefix = f"{entity_id.lower()}-"
        for path in files:
            if path.stem.lower().startswith(prefix):
                return path

        return await self._find_by_declared_id(files, entity_id)

    async def find_owned(self, directory: Path, entity_id: str) -> Optional[Path]:
        """Find the file that really belongs to an id.

        Like ``find_by_id``, but a name match is only accepted when the file does
        not declare another id (``MKA`` must not claim ``mka-1-title.md``). The
        search moves on to later candidates instead of giving up.
        """
        files = await self.list_entity_files(directory)
        if not files:
            return None

        prefix = f"{entity_id.lower()}-"
        for path in files:
            if not path.stem.lower().startswith(prefix):
                continue
            if await self.is_bound_to(path, entity_id):
                return path
            logger.debug(f"File {path} matches id {entity_id} by name only, skipping")

        return await self._find_by_declared_id(files, entity_id)

    async def _find_by_declared_id(self, files: List[Path], entity_id: str) -> Optional[Path]:
        for path in files:
            try:
                file_id = await self.parser.read_entity_id(path)
            except MarkdownParseError as e:
                logger.debug(f"Skipping unreadable file during lookup: {path} ({e})")
                continue
            if file_id == entity_id:
                return path

        return None

    async def is_bound_to(self, path: Path, entity_id: str) -> bool:
        """Check that a file really belongs to an id.

        A file declaring an id belongs to that id. A file without one belongs to
        the id carried by its name (``{id}-...`` prefix or the bare stem).
        """
        try:
            document = await self.parser.parse_file(path)
        except MarkdownParseError:
            return False

        if document is None:
            return False

        declared = document.metadata.get("id")
        if declared in (None, ""):
            stem = path.stem.lower()
            return stem == entity_id.lower() or stem.startswith(f"{entity_id.lower()}-")
        return str(declared) == entity_id

    async def resolve_unique_name(
        self,
        base_path: Path,
        entity_id: str,
        max_retries: Optional[int] = None,
    ) -> str:
        """Pick a filename for ``entity_id`` that no other id owns.

        Returns the base name when it is free or already owned by the same id,
        otherwise the first free (or same-id) ``{stem}_{n}`` candidate. When all
        candidates are taken the name falls back to ``{stem}_{id[:8]}``.

        Returns:
            File name (with extension) inside ``base_path.parent``
        """
        retries = self.max_retries if max_retries is None else max_retries
        directory = base_path.parent
        stem = base_path.stem
        extension = base_path.suffix or MARKDOWN_EXTENSION

        if await self._is_available(directory / f"{stem}{extension}", entity_id):
            return f"{stem}{extension}"

        for counter in range(1, retries + 1):
            candidate = f"{stem}_{counter}{extension}"
            if await self._is_available(directory / candidate, entity_id):
                logger.debug(f"Resolved filename collision for {entity_id}: {candidate}")
                return candidate

        fallback = f"{stem}_{entity_id[:8]}{extension}"
        logger.warning(
            f"Exhausted {retries} filename candidates for {entity_id}, using {fallback}"
        )
        return fallback

    async def cleanup(self, directory: Path, current_ids: Set[str]) -> CleanupReport:
        """Remove orphaned and duplicate files.

        Files whose id is not in ``current_ids`` are deleted. When several files
        carry the same id, the most recently modified one is kept and the rest
        are deleted. Unparseable files are logged and left in place.
        """
        report = CleanupReport()
        files_by_id: Dict[str, List[Path]] = {}

        for path in await self.list_entity_files(directory):
            try:
                file_id = await self.parser.read_entity_id(path)
            except MarkdownParseError as e:
                logger.warning(f"Skipping corrupted file during cleanup: {path} ({e})")
                report.skipped.append(path)
                continue

            if file_id is None:
                # Vanished since the listing
                continue

            if file_id not in current_ids:
                if await self.file_service.delete_file(path):
                    logger.info(f"Removed orphaned task file: {path}")
                    report.orphans.append(path)
                continue

            files_by_id.setdefault(file_id, []).append(path)

        for file_id, paths in files_by_id.items():
            if len(paths) < 2:
                continue

            stamped = []
            for path in paths:
                mtime = await self.file_service.stat(path)
                stamped.append((mtime if mtime is not None else -1, path.name, path))

            # Newest first; the name breaks ties so the result is deterministic
            stamped.sort(key=lambda item: (item[0], item[1]), reverse=True)
            keep = stamped[0][2]
            for _, _, path in stamped[1:]:
                if await self.file_service.delete_file(path):
                    logger.info(f"Removed duplicate file for {file_id}: {path} (kept {keep.name})")
                    report.duplicates.append(path)

        return report

    async def _is_available(self, path: Path, entity_id: str) -> bool:
        """A candidate is usable when it is free or already bound to the same id."""
        if not await self.file_service.is_file(path):
            return True

        try:
            existing_id = await self.parser.read_entity_id(path)
        except MarkdownParseError:
            # Unreadable occupant counts as a collision
            return False

        # None means the occupant vanished after the existence check
        return existing_id is None or existing_id == entity_id
