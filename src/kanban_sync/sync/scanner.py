"""Recursive directory scanner producing snapshots for change detection."""

import asyncio
from pathlib import Path
from typing import Optional, Set

import aiofiles.os
from loguru import logger

from kanban_sync.sync.change_detector import DirectorySnapshot, FileState

DEFAULT_MAX_DEPTH = 20
DEFAULT_YIELD_EVERY = 100


class DirectoryScanner:
    """Walks the boards tree and records every entry with its modification time.

    Directory mtimes are unreliable across platforms, so directories are always
    recorded with a modified time of 0. Symlink cycles are broken with a per-scan
    set of resolved directory paths, and recursion stops at ``max_depth``.
    """

    def __init__(
        self,
        root: Path,
        max_depth: int = DEFAULT_MAX_DEPTH,
        yield_every: int = DEFAULT_YIELD_EVERY,
    ):
        self.root = Path(root)
        self.max_depth = max_depth
        self.yield_every = max(1, yield_every)
        self._processed = 0

    def on_root_changed(self, new_root: Path) -> None:
        logger.info(f"DirectoryScanner: root changed from {self.root} to {new_root}")
        self.root = Path(new_root)

    async def scan(self, root: Optional[Path] = None) -> DirectorySnapshot:
        """Scan a directory tree.

        Returns:
            Snapshot of every entry below the root (the root itself excluded),
            or an empty snapshot if the root does not exist
        """
        root = Path(root) if root is not None else self.root
        snapshot: DirectorySnapshot = {}

        if not await aiofiles.os.path.isdir(root):
            logger.debug(f"Scan root does not exist: {root}")
            return snapshot

        self._processed = 0
        visited: Set[Path] = set()
        await self._scan_directory(root, snapshot, visited, depth=0)

        logger.trace(f"Scanned {root}: {len(snapshot)} entries")
        return snapshot

    async def _scan_directory(
        self,
        directory: Path,
        snapshot: DirectorySnapshot,
        visited: Set[Path],
        depth: int,
    ) -> None:
        if depth > self.max_depth:
            logger.warning(f"Max scan depth {self.max_depth} reached, not descending into {directory}")
            return

        resolved = directory.resolve()
        if resolved in visited:
            logger.warning(f"Directory cycle detected, skipping {directory} -> {resolved}")
            return
        visited.add(resolved)

        try:
            entries = await aiofiles.os.scandir(directory)
        except OSError as e:
            # Permission denied or vanished: treat the subtree as empty
            logger.warning(f"Failed to scan directory {directory}: {e}")
            return

        subdirectories = []
        with entries:
            for entry in entries:
                try:
                    is_directory = entry.is_dir()
                    modified_time = 0 if is_directory else entry.stat().st_mtime_ns
                except OSError:
                    # Vanished between listing and stat
                    continue

                snapshot[entry.path] = FileState(entry.path, modified_time, is_directory)
                if is_directory:
                    subdirectories.append(Path(entry.path))

                self._processed += 1
                if self._processed % self.yield_every == 0:
                    await asyncio.sleep(0)

        for subdirectory in subdirectories:
            await self._scan_directory(subdirectory, snapshot, visited, depth + 1)
