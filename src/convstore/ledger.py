"""File-backed host for storage accounts.

Layout:
    <root>/
    └── accounts/
        └── <address-hex>.bin     # 32-byte authority + account buffer

An invocation runs against an in-memory copy of the account; the file is
replaced (temp file + os.replace) only when the router returns normally.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from convstore.address import format_address
from convstore.codec import ADDRESS_LEN
from convstore.errors import InvalidAccountData
from convstore.instruction import Clock, process_instruction, unix_clock
from convstore.state import DEFAULT_CAPACITY, Conversations
from convstore.validator import StorageAccount

logger = logging.getLogger(__name__)


class Ledger:
    """Persists storage accounts and commits invocations atomically."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.accounts_dir = root / "accounts"
        self.accounts_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, address: bytes) -> Path:
        return self.accounts_dir / f"{format_address(address)}.bin"

    # ── Account access ────────────────────────────────────────

    def get(self, address: bytes) -> StorageAccount | None:
        path = self._path(address)
        if not path.exists():
            return None
        raw = path.read_bytes()
        if len(raw) < ADDRESS_LEN:
            raise InvalidAccountData(f"account file {path.name} is truncated ({len(raw)} bytes)")
        return StorageAccount(address=address, authority=raw[:ADDRESS_LEN], data=raw[ADDRESS_LEN:])

    def open(self, address: bytes, authority: bytes) -> StorageAccount:
        """Return the stored account, or a new empty one controlled by ``authority``."""
        account = self.get(address)
        if account is None:
            logger.debug("Allocating empty account %s", format_address(address))
            account = StorageAccount(address=address, authority=authority)
        return account

    def save(self, account: StorageAccount) -> None:
        path = self._path(account.address)
        tmp = path.with_suffix(".bin.tmp")
        try:
            tmp.write_bytes(bytes(account.authority) + bytes(account.data))
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def load_store(self, address: bytes, capacity: int = DEFAULT_CAPACITY) -> Conversations:
        """Decode the store held at ``address`` (empty if never written)."""
        account = self.get(address)
        return Conversations.from_bytes(account.data if account else b"", capacity)

    # ── Invocation ────────────────────────────────────────────

    def invoke(
        self,
        program_id: bytes,
        address: bytes,
        data: bytes,
        *,
        clock: Clock | None = None,
        capacity: int = DEFAULT_CAPACITY,
    ) -> int:
        """Run one instruction against the account at ``address``.

        Errors propagate and leave the account file untouched.
        """
        account = self.open(address, program_id)
        working = replace(account)
        result = process_instruction(
            program_id,
            [working],
            data,
            clock=clock or unix_clock,
            capacity=capacity,
        )
        if working.data != account.data:
            self.save(working)
            logger.debug(
                "Committed %d bytes to %s", len(working.data), format_address(address)
            )
        return result
