"""Render stored conversations as Markdown transcripts with YAML frontmatter."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import frontmatter

from convstore.address import format_address
from convstore.state import Conversation, Conversations, Sender

logger = logging.getLogger(__name__)

_SENDER_LABEL = {Sender.USER: "User", Sender.SYSTEM: "System"}


def format_timestamp(created_at: int) -> str:
    """ISO-8601 UTC for ``created_at``, or the raw integer if datetime cannot hold it."""
    try:
        created = datetime.fromtimestamp(created_at, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return str(created_at)
    return created.isoformat(timespec="seconds")


def _render_body(conversation: Conversation) -> str:
    lines = [f"# {conversation.description or 'Conversation'}", ""]
    if conversation.content_summary:
        lines.append("## Summary")
        lines.extend(f"- {item}" for item in conversation.content_summary)
        lines.append("")
    lines.append("## Messages")
    if not conversation.messages:
        lines.append("(no messages)")
    for message in conversation.messages:
        lines.append(f"**{_SENDER_LABEL[message.sender]}:** {message.text}")
        if message.image_url:
            alt = message.image_description or ""
            lines.append(f"![{alt}]({message.image_url})")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def render_conversation(index: int, conversation: Conversation) -> str:
    """Markdown document for one slot."""
    post = frontmatter.Post(
        _render_body(conversation),
        slot=index,
        owner=format_address(conversation.owner),
        created_at=format_timestamp(conversation.created_at),
        description=conversation.description,
        content_summary=list(conversation.content_summary),
        messages=len(conversation.messages),
    )
    return frontmatter.dumps(post) + "\n"


def export_store(store: Conversations, dest: Path) -> list[Path]:
    """Write ``slot-<n>.md`` for every occupied slot; return the paths written."""
    dest.mkdir(parents=True, exist_ok=True)
    written = []
    for index, conversation in store.occupied():
        path = dest / f"slot-{index}.md"
        path.write_text(render_conversation(index, conversation), encoding="utf-8")
        written.append(path)
    logger.info("Exported %d conversations to %s", len(written), dest)
    return written
