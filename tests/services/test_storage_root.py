"""Tests for StorageRoot change notification."""

from pathlib import Path

import pytest

from kanban_sync.services.storage_root import StorageRoot


class RecordingObserver:
    def __init__(self):
        self.roots = []

    def on_root_changed(self, new_root: Path) -> None:
        self.roots.append(new_root)


class BrokenObserver:
    def on_root_changed(self, new_root: Path) -> None:
        raise RuntimeError("boom")


def test_root_defaults_until_set(tmp_path):
    root = StorageRoot(tmp_path / "default")

    assert root.root == tmp_path / "default"
    assert root.is_custom is False


def test_set_root_notifies_observers(tmp_path):
    root = StorageRoot(tmp_path / "default")
    observer = RecordingObserver()
    root.add_observer(observer)

    root.set_root(tmp_path / "custom")

    assert root.root == tmp_path / "custom"
    assert root.is_custom is True
    assert observer.roots == [tmp_path / "custom"]


def test_setting_same_root_does_not_notify(tmp_path):
    root = StorageRoot(tmp_path / "default")
    observer = RecordingObserver()
    root.add_observer(observer)

    root.set_root(tmp_path / "default")

    assert observer.roots == []


def test_reset_to_default(tmp_path):
    root = StorageRoot(tmp_path / "default", custom_root=tmp_path / "custom")
    observer = RecordingObserver()
    root.add_observer(observer)

    root.reset_to_default()
    root.reset_to_default()

    assert root.root == tmp_path / "default"
    assert observer.roots == [tmp_path / "default"]


def test_empty_root_is_rejected(tmp_path):
    root = StorageRoot(tmp_path)

    with pytest.raises(ValueError):
        root.set_root("   ")


def test_failing_observer_does_not_block_others(tmp_path):
    root = StorageRoot(tmp_path / "default")
    observer = RecordingObserver()
    root.add_observer(BrokenObserver())
    root.add_observer(observer)

    root.set_root(tmp_path / "custom")

    assert observer.roots == [tmp_path / "custom"]


def test_removed_observer_is_not_notified(tmp_path):
    root = StorageRoot(tmp_path / "default")
    observer = RecordingObserver()
    root.add_observer(observer)
    root.remove_observer(observer)

    root.set_root(tmp_path / "custom")

    assert observer.roots == []


def test_services_follow_root_changes(storage_root, persistence, agenda_service, tmp_path):
    new_root = tmp_path / "moved"

    storage_root.set_root(new_root)

    assert persistence.boards_dir == new_root
    assert agenda_service.agenda_dir == new_root / "agenda"
