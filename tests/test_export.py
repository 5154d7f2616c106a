"""Tests for Markdown export."""

from __future__ import annotations

from pathlib import Path

import frontmatter

from convstore.export import export_store, format_timestamp, render_conversation
from convstore.state import Conversation, Conversations, Message, Sender

OWNER = bytes(range(32))


def make_store() -> Conversations:
    store = Conversations.new(3)
    store.add(
        Conversation(
            owner=OWNER,
            created_at=1625097600,
            messages=[
                Message(Sender.USER, "hello", image_url="https://example.com/cat.png", image_description="cat"),
                Message(Sender.SYSTEM, "hi there"),
            ],
            content_summary=["greeting"],
            description="Small talk",
        )
    )
    store.add(Conversation(owner=OWNER, created_at=0, description="Second"))
    return store


class TestRender:
    def test_frontmatter_fields(self):
        store = make_store()
        post = frontmatter.loads(render_conversation(0, store.slots[0]))
        assert post["slot"] == 0
        assert post["owner"] == OWNER.hex()
        assert post["created_at"] == "2021-07-01T00:00:00+00:00"
        assert post["description"] == "Small talk"
        assert post["content_summary"] == ["greeting"]
        assert post["messages"] == 2

    def test_body_transcript(self):
        store = make_store()
        post = frontmatter.loads(render_conversation(0, store.slots[0]))
        assert "# Small talk" in post.content
        assert "- greeting" in post.content
        assert "**User:** hello" in post.content
        assert "![cat](https://example.com/cat.png)" in post.content
        assert "**System:** hi there" in post.content

    def test_empty_conversation(self):
        post = frontmatter.loads(render_conversation(1, make_store().slots[1]))
        assert "(no messages)" in post.content

    def test_timestamp_beyond_datetime_range(self):
        conv = Conversation(owner=bytes(32), created_at=2**64 - 1, description="x")
        post = frontmatter.loads(render_conversation(0, conv))
        assert post["created_at"] == str(2**64 - 1)


class TestFormatTimestamp:
    def test_iso_utc(self):
        assert format_timestamp(0) == "1970-01-01T00:00:00+00:00"

    def test_out_of_range_falls_back_to_integer(self):
        assert format_timestamp(2**64 - 1) == "18446744073709551615"


class TestExportStore:
    def test_writes_occupied_slots_only(self, tmp_path: Path):
        store = make_store()
        store.remove(0)
        paths = export_store(store, tmp_path / "out")
        assert [p.name for p in paths] == ["slot-1.md"]
        assert frontmatter.load(str(paths[0]))["description"] == "Second"

    def test_empty_store(self, tmp_path: Path):
        assert export_store(Conversations.new(3), tmp_path / "out") == []
        assert (tmp_path / "out").is_dir()
