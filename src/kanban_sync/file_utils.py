"""Low-level file helpers shared by the storage services."""

import errno
import os
from pathlib import Path

import aiofiles
import aiofiles.os

# Suffix for temporaries used by atomic writes; the watcher ignores these
TEMP_SUFFIX = ".tmp"

_PERMISSION_ERRNOS = {errno.EACCES, errno.EPERM, errno.EROFS}


def is_permission_error(error: BaseException) -> bool:
    """Check whether an OS error means the location is not writable."""
    if isinstance(error, PermissionError):
        return True
    return isinstance(error, OSError) and error.errno in _PERMISSION_ERRNOS


def strip_bom(content: str) -> str:
    """Remove a UTF-8 byte order mark, which breaks front-matter detection."""
    return content[1:] if content.startswith("\ufeff") else content


def temp_path_for(path: Path) -> Path:
    return path.with_name(f".{path.name}{TEMP_SUFFIX}")


async def write_file_atomic(path: Path, content: str) -> None:
    """Write a file through a temporary sibling and an atomic replace.

    External readers either see the old content or the new content, never a
    partial write.
    """
    temp_path = temp_path_for(path)
    try:
        async with aiofiles.open(temp_path, mode="w", encoding="utf-8") as f:
            await f.write(content)
        await aiofiles.os.replace(temp_path, path)
    except Exception:
        # Leave no half-written temporary behind
        if os.path.exists(temp_path):
            await aiofiles.os.remove(temp_path)
        raise
