"""Conversation records and the fixed-capacity slot store."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum

from convstore.codec import DecodeError, Reader, Writer, decode, encode
from convstore.errors import CapacityError, InvalidAccountData, InvalidIndexError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 3


class Sender(IntEnum):
    USER = 0
    SYSTEM = 1

    @classmethod
    def read_from(cls, reader: Reader) -> Sender:
        tag = reader.u8()
        try:
            return cls(tag)
        except ValueError as exc:
            raise DecodeError(f"unknown sender tag {tag}") from exc


@dataclass(frozen=True)
class Message:
    """A single chat message. Owned by the conversation that holds it."""

    sender: Sender
    text: str
    image_url: str | None = None
    image_description: str | None = None

    def write_to(self, writer: Writer) -> None:
        writer.u8(int(self.sender))
        writer.string(self.text)
        writer.option(self.image_url, writer.string)
        writer.option(self.image_description, writer.string)

    @classmethod
    def read_from(cls, reader: Reader) -> Message:
        return cls(
            sender=Sender.read_from(reader),
            text=reader.string(),
            image_url=reader.option(reader.string),
            image_description=reader.option(reader.string),
        )


@dataclass
class Conversation:
    """One slot's worth of data: owner, creation time, messages, summary."""

    owner: bytes
    created_at: int
    messages: list[Message] = field(default_factory=list)
    content_summary: list[str] = field(default_factory=list)
    description: str = ""

    def write_to(self, writer: Writer) -> None:
        writer.address(self.owner)
        writer.u64(self.created_at)
        writer.sequence(self.messages, lambda m: m.write_to(writer))
        writer.sequence(self.content_summary, writer.string)
        writer.string(self.description)

    @classmethod
    def read_from(cls, reader: Reader) -> Conversation:
        return cls(
            owner=reader.address(),
            created_at=reader.u64(),
            messages=reader.sequence(lambda: Message.read_from(reader)),
            content_summary=reader.sequence(reader.string),
            description=reader.string(),
        )


@dataclass
class Conversations:
    """Fixed-capacity array of conversation slots.

    ``occupied_count`` always equals the number of non-empty slots, and
    ``len(slots) == capacity`` once initialized. Placement is first-fit:
    a new conversation always lands in the lowest-indexed empty slot.
    """

    slots: list[Conversation | None] = field(default_factory=list)
    capacity: int = 0
    occupied_count: int = 0

    # ── Construction & persistence ────────────────────────────

    @classmethod
    def new(cls, capacity: int = DEFAULT_CAPACITY) -> Conversations:
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        return cls(slots=[None] * capacity, capacity=capacity, occupied_count=0)

    @classmethod
    def from_bytes(cls, buffer: bytes, capacity: int = DEFAULT_CAPACITY) -> Conversations:
        """Load a store from an account buffer.

        An empty buffer is the uninitialized state and yields a fresh store
        with ``capacity`` slots. A stored store keeps the capacity it was
        created with.
        """
        if len(buffer) == 0:
            logger.debug("Initializing empty store with capacity %d", capacity)
            return cls.new(capacity)
        try:
            store = decode(cls, buffer)
        except DecodeError as exc:
            raise InvalidAccountData(f"cannot decode conversations: {exc}") from exc
        store._check_invariants()
        return store

    def to_bytes(self) -> bytes:
        return encode(self)

    def write_to(self, writer: Writer) -> None:
        writer.sequence(self.slots, lambda slot: writer.option(slot, lambda c: c.write_to(writer)))
        writer.u64(self.capacity)
        writer.u64(self.occupied_count)

    @classmethod
    def read_from(cls, reader: Reader) -> Conversations:
        slots = reader.sequence(lambda: reader.option(lambda: Conversation.read_from(reader)))
        return cls(slots=slots, capacity=reader.u64(), occupied_count=reader.u64())

    def _check_invariants(self) -> None:
        if len(self.slots) != self.capacity:
            raise InvalidAccountData(
                f"slot array length {len(self.slots)} does not match capacity {self.capacity}"
            )
        occupied = sum(1 for slot in self.slots if slot is not None)
        if occupied != self.occupied_count:
            raise InvalidAccountData(
                f"occupied count {self.occupied_count} does not match {occupied} filled slots"
            )

    # ── Queries ───────────────────────────────────────────────

    def is_full(self) -> bool:
        return self.occupied_count == self.capacity

    def is_initialized(self) -> bool:
        return len(self.slots) > 0

    def get(self, index: int) -> Conversation | None:
        if not 0 <= index < len(self.slots):
            raise InvalidIndexError(f"slot {index} is out of range (capacity {self.capacity})")
        return self.slots[index]

    def occupied(self) -> Iterator[tuple[int, Conversation]]:
        for index, slot in enumerate(self.slots):
            if slot is not None:
                yield index, slot

    # ── Mutation ──────────────────────────────────────────────

    def add(self, conversation: Conversation) -> int:
        """Place ``conversation`` in the first empty slot and return its index."""
        for index, slot in enumerate(self.slots):
            if slot is None:
                self.slots[index] = conversation
                self.occupied_count += 1
                return index
        raise CapacityError(f"all {self.capacity} conversation slots are occupied")

    def remove(self, index: int) -> Conversation:
        """Clear slot ``index`` and return what it held."""
        if not 0 <= index < len(self.slots) or self.slots[index] is None:
            raise InvalidIndexError(f"no conversation in slot {index}")
        removed = self.slots[index]
        self.slots[index] = None
        self.occupied_count -= 1
        return removed
