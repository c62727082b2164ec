"""Tests for agenda storage."""

import pytest

from kanban_sync.schemas.agenda import AgendaItem
from kanban_sync.schemas.base import Board, Task


def make_item(task_id: str, scheduled_date: str, scheduled_time=None, **kwargs) -> AgendaItem:
    return AgendaItem(
        project_id="p1",
        board_id="b1",
        task_id=task_id,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_save_writes_into_day_directory(agenda_service, boards_dir):
    item = make_item("MKA-1", "2025-03-07", "09:30", notes="Bring slides")

    path = await agenda_service.save(item)

    assert path == boards_dir / "agenda" / "2025" / "03" / "07" / "p1-b1-MKA-1.md"
    assert item.file_path == path
    text = path.read_text()
    assert "scheduled_time: 09:30" in text or "scheduled_time: '09:30'" in text
    assert "Bring slides" in text


@pytest.mark.asyncio
async def test_load_for_date_round_trips_fields(agenda_service):
    item = make_item("MKA-1", "2025-03-07", "09:30", duration_minutes=45, notes="Notes here")
    await agenda_service.save(item)

    [loaded] = await agenda_service.load_for_date("2025-03-07")

    assert loaded.id == item.id
    assert loaded.scheduled_date == "2025-03-07"
    assert loaded.scheduled_time == "09:30"
    assert loaded.duration_minutes == 45
    assert loaded.notes == "Notes here"


@pytest.mark.asyncio
async def test_load_for_date_sorts_by_time(agenda_service):
    await agenda_service.save(make_item("LATE", "2025-03-07", "15:00"))
    await agenda_service.save(make_item("EARLY", "2025-03-07", "08:00"))
    await agenda_service.save(make_item("UNTIMED", "2025-03-07"))

    items = await agenda_service.load_for_date("2025-03-07")

    assert [item.task_id for item in items] == ["UNTIMED", "EARLY", "LATE"]


@pytest.mark.asyncio
async def test_reschedule_moves_file(agenda_service):
    item = make_item("MKA-1", "2025-03-07")
    old_path = await agenda_service.save(item)

    item.reschedule("2025-03-09", "10:00")
    new_path = await agenda_service.save(item)

    assert not old_path.exists()
    assert new_path.exists()
    assert await agenda_service.load_for_date("2025-03-07") == []
    assert [i.task_id for i in await agenda_service.load_for_date("2025-03-09")] == ["MKA-1"]


@pytest.mark.asyncio
async def test_load_for_date_range_is_inclusive(agenda_service):
    for day in ["2025-03-06", "2025-03-07", "2025-03-08", "2025-03-09"]:
        await agenda_service.save(make_item(f"T-{day[-2:]}", day))

    items = await agenda_service.load_for_date_range("2025-03-07", "2025-03-08")

    assert [item.task_id for item in items] == ["T-07", "T-08"]


@pytest.mark.asyncio
async def test_load_by_id_and_task(agenda_service):
    first = make_item("MKA-1", "2025-03-07")
    second = make_item("MKA-1", "2025-04-01")
    await agenda_service.save(first)
    await agenda_service.save(second)

    assert (await agenda_service.load_by_id(second.id)).scheduled_date == "2025-04-01"
    assert await agenda_service.load_by_id("missing") is None
    assert len(await agenda_service.load_by_task("p1", "b1", "MKA-1")) == 2


@pytest.mark.asyncio
async def test_delete(agenda_service):
    item = make_item("MKA-1", "2025-03-07")
    await agenda_service.save(item)

    assert await agenda_service.delete(item) is True
    assert await agenda_service.load_all() == []
    assert await agenda_service.delete(item) is False


@pytest.mark.asyncio
async def test_corrupted_agenda_file_is_skipped(agenda_service):
    await agenda_service.save(make_item("MKA-1", "2025-03-07"))
    day_dir = agenda_service.day_dir("2025-03-07")
    (day_dir / "broken.md").write_text("---\nid: [oops\n---\n")
    (day_dir / "incomplete.md").write_text("---\nid: x\n---\n")

    items = await agenda_service.load_for_date("2025-03-07")

    assert [item.task_id for item in items] == ["MKA-1"]


@pytest.mark.asyncio
async def test_get_orphaned(agenda_service):
    board = Board(id="b1", name="Alpha")
    board.add_column("To Do", 0).tasks.append(Task(id="MKA-1", title="Kept"))
    await agenda_service.save(make_item("MKA-1", "2025-03-07"))
    await agenda_service.save(make_item("MKA-2", "2025-03-07"))
    other = AgendaItem(
        project_id="p1", board_id="gone", task_id="MKA-1", scheduled_date="2025-03-08"
    )
    await agenda_service.save(other)

    orphaned = await agenda_service.get_orphaned([board])

    assert sorted((item.board_id, item.task_id) for item in orphaned) == [
        ("b1", "MKA-2"),
        ("gone", "MKA-1"),
    ]


@pytest.mark.asyncio
async def test_unquoted_time_loads_as_clock_string(agenda_service, boards_dir):
    day_dir = boards_dir / "agenda" / "2025" / "03" / "07"
    day_dir.mkdir(parents=True)
    (day_dir / "p1-b1-MKA-1.md").write_text(
        "---\nid: agenda-1\nproject_id: p1\nboard_id: b1\ntask_id: MKA-1\n"
        "scheduled_date: 2025-03-07\nscheduled_time: 15:00\n---\n",
        encoding="utf-8",
    )

    [loaded] = await agenda_service.load_for_date("2025-03-07")

    assert loaded.scheduled_time == "15:00"
