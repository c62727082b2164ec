"""Tests for the front-matter markdown parser."""

from datetime import date

import pytest

from kanban_sync.markdown.parser import normalize_frontmatter_value, split_title
from kanban_sync.services.exceptions import MarkdownParseError


def test_parse_content_splits_metadata_title_and_body(parser):
    document = parser.parse_content("---\nid: MKA-1\npriority: high\n---\n# Write docs\n\nBody text\n")

    assert document.metadata == {"id": "MKA-1", "priority": "high"}
    assert document.title == "Write docs"
    assert document.content == "Body text"
    assert document.entity_id == "MKA-1"


def test_parse_content_without_frontmatter(parser):
    document = parser.parse_content("# Only a title\n")

    assert document.metadata == {}
    assert document.title == "Only a title"
    assert document.content == ""


def test_frontmatter_title_wins_over_heading(parser):
    document = parser.parse_content("---\ntitle: From metadata\n---\n# From heading\n")

    assert document.title == "From metadata"


def test_parse_content_strips_byte_order_mark(parser):
    document = parser.parse_content("\ufeff---\nid: MKA-2\n---\nbody\n")

    assert document.entity_id == "MKA-2"


def test_malformed_frontmatter_raises(parser, tmp_path):
    with pytest.raises(MarkdownParseError) as exc_info:
        parser.parse_content("---\nid: [unclosed\n---\nbody\n", file_path=tmp_path / "x.md")

    assert exc_info.value.path == tmp_path / "x.md"


def test_yaml_dates_become_strings(parser):
    document = parser.parse_content("---\ndue: 2025-10-24\ntags: [a, 2025-01-02]\n---\n")

    assert document.metadata["due"] == "2025-10-24"
    assert document.metadata["tags"] == ["a", "2025-01-02"]


def test_normalize_keeps_numbers():
    assert normalize_frontmatter_value({"position": 3, "day": date(2025, 1, 1)}) == {
        "position": 3,
        "day": "2025-01-01",
    }


def test_split_title_without_heading():
    assert split_title("\nplain body\n") == (None, "plain body")


def test_entity_id_falls_back_to_stem(parser, tmp_path):
    document = parser.parse_content("no metadata", file_path=tmp_path / "mka-9-title.md")

    assert document.entity_id == "mka-9-title"


def test_dump_omits_unset_fields_and_keeps_order(parser):
    text = parser.dump({"id": "MKA-1", "due": None, "priority": "low"}, "Title", "Body")

    assert text == "---\nid: MKA-1\npriority: low\n---\n\n# Title\n\nBody\n"


@pytest.mark.asyncio
async def test_write_then_parse_file(parser, tmp_path):
    path = tmp_path / "task.md"

    await parser.write(path, {"id": "MKA-3", "tags": ["x"]}, title="Task", content="Notes")
    document = await parser.parse_file(path)

    assert document.metadata == {"id": "MKA-3", "tags": ["x"]}
    assert document.title == "Task"
    assert document.content == "Notes"
    assert document.file_path == path


@pytest.mark.asyncio
async def test_parse_missing_file_returns_none(parser, tmp_path):
    assert await parser.parse_file(tmp_path / "missing.md") is None
    assert await parser.read_entity_id(tmp_path / "missing.md") is None


@pytest.mark.asyncio
async def test_non_utf8_file_raises_parse_error(parser, tmp_path):
    path = tmp_path / "mka-9-garbage.md"
    path.write_bytes(b"---\nid: MKA-9\n---\n\xff\xfe garbage")

    with pytest.raises(MarkdownParseError, match="UTF-8"):
        await parser.parse_file(path)
    with pytest.raises(MarkdownParseError):
        await parser.read_entity_id(path)
