"""Instruction payloads and the router that dispatches them.

Payload layout: one u8 tag followed by the command's fields in order.
    0  CreateConversation  owner, description, content_summary, initial_messages?
    1  StoreMessage        sender, text, image_url?, image_description?
    2  ResetConversation   owner, slot_id (u8)

Only CreateConversation has a handler; the other commands decode but are
rejected with UnsupportedInstruction.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import ClassVar

from convstore.address import format_address
from convstore.codec import DecodeError, Reader, Writer
from convstore.errors import (
    CapacityError,
    InvalidInstructionData,
    NotEnoughAccountKeys,
    UnsupportedInstruction,
)
from convstore.state import DEFAULT_CAPACITY, Conversation, Conversations, Message, Sender
from convstore.validator import StorageAccount, validate

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def unix_clock() -> int:
    return int(time.time())


# ── Commands ──────────────────────────────────────────────────


@dataclass
class CreateConversation:
    """Start a new conversation in the owner's store."""

    TAG: ClassVar[int] = 0

    owner: bytes
    description: str
    content_summary: list[str] = field(default_factory=list)
    initial_messages: list[Message] | None = None

    def write_to(self, writer: Writer) -> None:
        writer.address(self.owner)
        writer.string(self.description)
        writer.sequence(self.content_summary, writer.string)
        writer.option(
            self.initial_messages,
            lambda messages: writer.sequence(messages, lambda m: m.write_to(writer)),
        )

    @classmethod
    def read_from(cls, reader: Reader) -> CreateConversation:
        return cls(
            owner=reader.address(),
            description=reader.string(),
            content_summary=reader.sequence(reader.string),
            initial_messages=reader.option(
                lambda: reader.sequence(lambda: Message.read_from(reader))
            ),
        )


@dataclass
class StoreMessage:
    """Append a message to a conversation."""

    TAG: ClassVar[int] = 1

    sender: Sender
    text: str
    image_url: str | None = None
    image_description: str | None = None

    def write_to(self, writer: Writer) -> None:
        Message(self.sender, self.text, self.image_url, self.image_description).write_to(writer)

    @classmethod
    def read_from(cls, reader: Reader) -> StoreMessage:
        message = Message.read_from(reader)
        return cls(message.sender, message.text, message.image_url, message.image_description)


@dataclass
class ResetConversation:
    """Clear one slot of the owner's store."""

    TAG: ClassVar[int] = 2

    owner: bytes
    slot_id: int

    def write_to(self, writer: Writer) -> None:
        writer.address(self.owner)
        writer.u8(self.slot_id)

    @classmethod
    def read_from(cls, reader: Reader) -> ResetConversation:
        return cls(owner=reader.address(), slot_id=reader.u8())


Instruction = CreateConversation | StoreMessage | ResetConversation

_COMMANDS: dict[int, type[Instruction]] = {
    cls.TAG: cls for cls in (CreateConversation, StoreMessage, ResetConversation)
}


def encode_instruction(instruction: Instruction) -> bytes:
    writer = Writer()
    writer.u8(instruction.TAG)
    instruction.write_to(writer)
    return writer.getvalue()


def decode_instruction(data: bytes) -> Instruction:
    """Decode a tagged payload, raising InvalidInstructionData on any mismatch."""
    reader = Reader(data)
    try:
        tag = reader.u8()
        command = _COMMANDS.get(tag)
        if command is None:
            raise InvalidInstructionData(f"unknown instruction tag {tag}")
        instruction = command.read_from(reader)
        reader.finish()
    except DecodeError as exc:
        raise InvalidInstructionData(f"malformed instruction payload: {exc}") from exc
    return instruction


# ── Router ────────────────────────────────────────────────────


def process_instruction(
    program_id: bytes,
    accounts: Sequence[StorageAccount],
    data: bytes,
    *,
    clock: Clock = unix_clock,
    capacity: int = DEFAULT_CAPACITY,
) -> int:
    """Decode ``data`` and run its handler against the first account.

    Returns the slot index a new conversation was stored in. Every failure
    raises before the account buffer is touched.
    """
    instruction = decode_instruction(data)
    if not accounts:
        raise NotEnoughAccountKeys("instruction requires the owner's storage account")
    account = accounts[0]

    logger.info("Instruction: %s", type(instruction).__name__)
    if isinstance(instruction, CreateConversation):
        conversation = Conversation(
            owner=instruction.owner,
            created_at=clock(),
            messages=list(instruction.initial_messages or []),
            content_summary=list(instruction.content_summary),
            description=instruction.description,
        )
        return process_create_conversation(
            program_id, account, conversation, instruction.owner, capacity=capacity
        )
    raise UnsupportedInstruction(f"{type(instruction).__name__} is not supported yet")


def process_create_conversation(
    program_id: bytes,
    account: StorageAccount,
    conversation: Conversation,
    owner: bytes,
    *,
    capacity: int = DEFAULT_CAPACITY,
) -> int:
    validate(owner, program_id, account.address, account.authority)

    store = Conversations.from_bytes(account.data, capacity)
    try:
        index = store.add(conversation)
    except CapacityError:
        logger.warning("Store for %s is full (%d slots)", format_address(owner), store.capacity)
        raise

    # Single write; the account keeps its old buffer on any earlier failure.
    account.data = store.to_bytes()
    logger.info(
        "Stored conversation for %s in slot %d (%d/%d occupied)",
        format_address(owner),
        index,
        store.occupied_count,
        store.capacity,
    )
    return index
