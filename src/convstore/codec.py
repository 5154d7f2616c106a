"""Fixed-layout binary codec (no I/O).

Layout rules, all little endian with no padding and no version tag:
- u8 / u32 / u64 integers
- string: u32 byte length + UTF-8 bytes
- optional: u8 flag (0 absent, 1 present) + value
- sequence: u32 element count + elements
- address: 32 raw bytes

Entities describe their own field order through ``write_to(writer)`` and
``read_from(reader)``; ``encode``/``decode`` wrap a whole buffer.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterable
from typing import Protocol, TypeVar, runtime_checkable

ADDRESS_LEN = 32

_U8 = struct.Struct("<B")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")

T = TypeVar("T")


class DecodeError(ValueError):
    """Raised when a buffer does not match the expected layout."""


@runtime_checkable
class Encodable(Protocol):
    """Entity with a fixed binary layout."""

    def write_to(self, writer: Writer) -> None: ...

    @classmethod
    def read_from(cls, reader: Reader) -> Encodable: ...


# ── Writing ───────────────────────────────────────────────────


class Writer:
    """Accumulates encoded fields in declaration order."""

    def __init__(self) -> None:
        self._parts: list[bytes] = []

    def _pack(self, fmt: struct.Struct, value: int) -> None:
        try:
            self._parts.append(fmt.pack(value))
        except struct.error as exc:
            raise ValueError(f"{value!r} does not fit in {fmt.size * 8} unsigned bits") from exc

    def u8(self, value: int) -> None:
        self._pack(_U8, value)

    def u32(self, value: int) -> None:
        self._pack(_U32, value)

    def u64(self, value: int) -> None:
        self._pack(_U64, value)

    def string(self, value: str) -> None:
        raw = value.encode("utf-8")
        self.u32(len(raw))
        self._parts.append(raw)

    def address(self, value: bytes) -> None:
        if len(value) != ADDRESS_LEN:
            raise ValueError(f"address must be {ADDRESS_LEN} bytes, got {len(value)}")
        self._parts.append(bytes(value))

    def option(self, value: T | None, write: Callable[[T], None]) -> None:
        if value is None:
            self.u8(0)
        else:
            self.u8(1)
            write(value)

    def sequence(self, items: Iterable[T], write: Callable[[T], None]) -> None:
        items = list(items)
        self.u32(len(items))
        for item in items:
            write(item)

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


# ── Reading ───────────────────────────────────────────────────


class Reader:
    """Consumes fields from a buffer, raising DecodeError on any mismatch."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, size: int) -> bytes:
        if size > self.remaining:
            raise DecodeError(
                f"unexpected end of buffer at offset {self._pos}: need {size} bytes, "
                f"have {self.remaining}"
            )
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def _unpack(self, fmt: struct.Struct) -> int:
        return fmt.unpack(self._take(fmt.size))[0]

    def u8(self) -> int:
        return self._unpack(_U8)

    def u32(self) -> int:
        return self._unpack(_U32)

    def u64(self) -> int:
        return self._unpack(_U64)

    def string(self) -> str:
        raw = self._take(self.u32())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid UTF-8 in string ending at offset {self._pos}") from exc

    def address(self) -> bytes:
        return self._take(ADDRESS_LEN)

    def option(self, read: Callable[[], T]) -> T | None:
        flag = self.u8()
        if flag == 0:
            return None
        if flag == 1:
            return read()
        raise DecodeError(f"invalid option flag {flag} at offset {self._pos - 1}")

    def sequence(self, read: Callable[[], T]) -> list[T]:
        count = self.u32()
        # Every element occupies at least one byte.
        if count > self.remaining:
            raise DecodeError(f"sequence of {count} elements exceeds remaining {self.remaining} bytes")
        return [read() for _ in range(count)]

    def finish(self) -> None:
        if self.remaining:
            raise DecodeError(f"{self.remaining} trailing bytes after offset {self._pos}")


# ── Whole-buffer helpers ──────────────────────────────────────


def encode(entity: Encodable) -> bytes:
    """Encode an entity into a fresh buffer."""
    writer = Writer()
    entity.write_to(writer)
    return writer.getvalue()


def decode(cls: type[T], data: bytes) -> T:
    """Decode ``data`` as ``cls``. The buffer must be consumed exactly."""
    reader = Reader(data)
    value = cls.read_from(reader)
    reader.finish()
    return value
