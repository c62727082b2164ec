"""Snapshot diffing for the polling watcher."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileState:
    """One entry of a directory snapshot.

    ``modified_time`` is ``st_mtime_ns`` for files and always 0 for directories.
    """

    path: str
    modified_time: int
    is_directory: bool = False


@dataclass(frozen=True)
class RawChange:
    path: str
    kind: ChangeKind
    is_directory: bool = False


# Absolute path -> state; replaced wholesale on every poll, never edited in place
DirectorySnapshot = Dict[str, FileState]


class ChangeDetector:
    """Holds the last committed snapshot and diffs new snapshots against it."""

    def __init__(self):
        self._previous: DirectorySnapshot = {}

    def detect_changes(self, current: DirectorySnapshot) -> List[RawChange]:
        """Compare a snapshot against the stored one.

        Additions and modifications follow the order of ``current``; deletions
        follow the order of the stored snapshot. Entries whose modified time is
        unchanged produce nothing.
        """
        changes: List[RawChange] = []

        for path, state in current.items():
            previous = self._previous.get(path)
            if previous is None:
                changes.append(RawChange(path, ChangeKind.ADDED, state.is_directory))
            elif previous.modified_time != state.modified_time:
                changes.append(RawChange(path, ChangeKind.MODIFIED, state.is_directory))

        for path, state in self._previous.items():
            if path not in current:
                changes.append(RawChange(path, ChangeKind.DELETED, state.is_directory))

        return changes

    def update_state(self, snapshot: DirectorySnapshot) -> None:
        self._previous = dict(snapshot)

    def get_state(self) -> DirectorySnapshot:
        return dict(self._previous)

    def reset(self) -> None:
        self._previous = {}
