"""Tests for FileService."""

import pytest

from kanban_sync.file_utils import temp_path_for
from kanban_sync.services.exceptions import StoragePermissionError


@pytest.mark.asyncio
async def test_write_creates_parents_and_leaves_no_temporary(file_service, tmp_path):
    target = tmp_path / "a" / "b" / "file.md"

    await file_service.write_file(target, "hello")

    assert target.read_text() == "hello"
    assert not temp_path_for(target).exists()


@pytest.mark.asyncio
async def test_write_replaces_existing_content(file_service, tmp_path):
    target = tmp_path / "file.md"
    target.write_text("old")

    await file_service.write_file(target, "new")

    assert target.read_text() == "new"


@pytest.mark.asyncio
async def test_read_missing_file_returns_none(file_service, tmp_path):
    assert await file_service.read_file(tmp_path / "missing.md") is None


@pytest.mark.asyncio
async def test_delete_file(file_service, tmp_path):
    target = tmp_path / "file.md"
    target.write_text("x")

    assert await file_service.delete_file(target) is True
    assert await file_service.delete_file(target) is False
    assert not target.exists()


@pytest.mark.asyncio
async def test_rename_file_creates_destination_directory(file_service, tmp_path):
    source = tmp_path / "file.md"
    source.write_text("x")
    destination = tmp_path / "nested" / "renamed.md"

    assert await file_service.rename_file(source, destination) is True
    assert destination.read_text() == "x"
    assert not source.exists()


@pytest.mark.asyncio
async def test_rename_missing_source_returns_false(file_service, tmp_path):
    assert await file_service.rename_file(tmp_path / "nope.md", tmp_path / "x.md") is False


@pytest.mark.asyncio
async def test_list_files_is_sorted_and_filtered(file_service, tmp_path):
    for name in ["b.md", "a.md", "c.txt"]:
        (tmp_path / name).write_text("x")
    (tmp_path / "sub").mkdir()

    files = await file_service.list_files(tmp_path, "*.md")

    assert [path.name for path in files] == ["a.md", "b.md"]
    assert [path.name for path in await file_service.list_directories(tmp_path)] == ["sub"]


@pytest.mark.asyncio
async def test_listing_missing_directory_is_empty(file_service, tmp_path):
    assert await file_service.list_files(tmp_path / "missing") == []
    assert await file_service.list_directories(tmp_path / "missing") == []


@pytest.mark.asyncio
async def test_delete_directory(file_service, tmp_path):
    directory = tmp_path / "board"
    (directory / "col").mkdir(parents=True)
    (directory / "col" / "task.md").write_text("x")

    assert await file_service.delete_directory(directory) is True
    assert not directory.exists()
    assert await file_service.delete_directory(directory) is False


@pytest.mark.asyncio
async def test_stat_returns_mtime_or_none(file_service, tmp_path):
    target = tmp_path / "file.md"
    target.write_text("x")

    assert await file_service.stat(target) == target.stat().st_mtime_ns
    assert await file_service.stat(tmp_path / "missing.md") is None


@pytest.mark.asyncio
async def test_permission_error_on_write_is_translated(file_service, tmp_path, monkeypatch):
    async def refuse(path, content):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("kanban_sync.services.file_service.write_file_atomic", refuse)

    with pytest.raises(StoragePermissionError) as exc_info:
        await file_service.write_file(tmp_path / "file.md", "x")

    assert exc_info.value.path == tmp_path / "file.md"
