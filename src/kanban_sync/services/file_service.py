"""Async file primitives used by the storage and sync services.

Read, list and lookup operations treat a missing path as an empty result. The
watched tree is shared with external editors, so a file can vanish between a
listing and a read; callers get None rather than an exception in that case.
Write operations raise StoragePermissionError when the OS refuses access.
"""

import asyncio
import fnmatch
import shutil
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
from loguru import logger

from kanban_sync.file_utils import is_permission_error, write_file_atomic
from kanban_sync.services.exceptions import FileOperationError, StoragePermissionError


class FileService:
    """Service for file operations on the boards tree."""

    async def exists(self, path: Path) -> bool:
        return await aiofiles.os.path.exists(path)

    async def is_file(self, path: Path) -> bool:
        return await aiofiles.os.path.isfile(path)

    async def is_directory(self, path: Path) -> bool:
        return await aiofiles.os.path.isdir(path)

    async def read_file(self, path: Path) -> Optional[str]:
        """Read a text file.

        Returns:
            File content, or None when the file does not exist or vanished
        """
        try:
            async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
                return await f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            logger.debug(f"File not found while reading: {path}")
            return None
        except PermissionError:
            logger.warning(f"Permission denied reading file: {path}")
            return None

    async def write_file(self, path: Path, content: str) -> None:
        """Write content to a file atomically, creating parent directories.

        Raises:
            StoragePermissionError: If the location is not writable
            FileOperationError: For any other I/O failure
        """
        await self.ensure_directory(path.parent)
        try:
            await write_file_atomic(path, content)
        except OSError as e:
            if is_permission_error(e):
                raise StoragePermissionError(path, "write to") from e
            raise FileOperationError(path, f"Failed to write file ({e})") from e

    async def ensure_directory(self, path: Path) -> None:
        """Create a directory and its parents if needed.

        Raises:
            StoragePermissionError: If the directory cannot be created for lack of access
            FileOperationError: For any other I/O failure
        """
        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except OSError as e:
            if is_permission_error(e):
                raise StoragePermissionError(path, "create directory") from e
            raise FileOperationError(path, f"Failed to create directory ({e})") from e

    async def delete_file(self, path: Path) -> bool:
        """Delete a file.

        Returns:
            True if the file was deleted, False if it was missing or could not be removed
        """
        try:
            await aiofiles.os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete file {path}: {e}")
            return False

    async def rename_file(self, old_path: Path, new_path: Path) -> bool:
        """Rename or move a file, creating the destination directory.

        Returns:
            True on success, False if the source is gone or the rename failed
        """
        if not await aiofiles.os.path.isfile(old_path):
            return False

        await self.ensure_directory(new_path.parent)
        try:
            await aiofiles.os.rename(old_path, new_path)
            return True
        except FileNotFoundError:
            logger.debug(f"File vanished before rename: {old_path}")
            return False
        except OSError as e:
            logger.error(f"Failed to rename file {old_path} to {new_path}: {e}")
            return False

    async def delete_directory(self, path: Path) -> bool:
        """Delete a directory and all its contents."""
        if not await aiofiles.os.path.isdir(path):
            return False
        try:
            await asyncio.to_thread(shutil.rmtree, path)
            return True
        except OSError as e:
            logger.error(f"Failed to delete directory {path}: {e}")
            return False

    async def list_files(self, directory: Path, pattern: str = "*") -> List[Path]:
        """List regular files in a directory whose names match a glob pattern.

        Results are sorted by name so callers see a stable directory order.
        """
        return [
            path
            for path, is_dir in await self._list_entries(directory)
            if not is_dir and fnmatch.fnmatch(path.name, pattern)
        ]

    async def list_directories(self, directory: Path) -> List[Path]:
        """List immediate subdirectories, sorted by name."""
        return [path for path, is_dir in await self._list_entries(directory) if is_dir]

    async def stat(self, path: Path) -> Optional[int]:
        """Get a file's modification time in nanoseconds, or None if it does not exist."""
        try:
            stat_result = await aiofiles.os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        return stat_result.st_mtime_ns

    async def _list_entries(self, directory: Path) -> List[tuple[Path, bool]]:
        try:
            entries = await aiofiles.os.scandir(directory)
        except (FileNotFoundError, NotADirectoryError):
            return []
        except PermissionError:
            logger.warning(f"Permission denied listing directory: {directory}")
            return []

        results = []
        with entries:
            for entry in entries:
                try:
                    if entry.is_dir():
                        results.append((Path(entry.path), True))
                    elif entry.is_file():
                        results.append((Path(entry.path), False))
                except OSError:
                    # Entry vanished between listing and type check
                    continue

        results.sort(key=lambda item: item[0].name)
        return results
