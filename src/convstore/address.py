"""Deterministic storage-address derivation.

A storage address is the SHA-256 of the seeds, the program id and a fixed
marker. Addresses that happen to be valid ed25519 points could have a
private key, so derivation walks a one-byte bump seed down from 255 until
the digest falls off the curve. The result can only be written through the
program that owns it.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

from convstore.codec import ADDRESS_LEN
from convstore.errors import DerivationError

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LEN = 32

# Curve25519 field prime and the twisted Edwards constant d = -121665/121666.
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def is_on_curve(address: bytes) -> bool:
    """Return True if ``address`` decompresses to an ed25519 point.

    The low 255 bits hold y; the curve has a matching x exactly when
    (y^2 - 1) / (d*y^2 + 1) is a square mod p. The sign bit only selects
    between +x and -x and never affects validity.
    """
    y = (int.from_bytes(address, "little") & ((1 << 255) - 1)) % _P
    yy = y * y % _P
    u = (yy - 1) % _P
    v = (_D * yy + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise DerivationError(f"at most {MAX_SEEDS} seeds allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(f"seed of {len(seed)} bytes exceeds {MAX_SEED_LEN}")


def _hash_seeds(seeds: Sequence[bytes], program_id: bytes) -> bytes | None:
    digest = hashlib.sha256()
    for seed in seeds:
        digest.update(seed)
    digest.update(program_id)
    digest.update(PDA_MARKER)
    address = digest.digest()
    return None if is_on_curve(address) else address


def create_program_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    """Hash ``seeds`` under ``program_id``; raise if the result is on the curve."""
    _check_seeds(seeds)
    address = _hash_seeds(seeds, program_id)
    if address is None:
        raise DerivationError("derived address lies on the ed25519 curve")
    return address


def find_program_address(seeds: Sequence[bytes], program_id: bytes) -> tuple[bytes, int]:
    """Return the first off-curve address and its bump, trying 255 down to 1."""
    _check_seeds([*seeds, b"\xff"])
    for bump in range(255, 0, -1):
        address = _hash_seeds([*seeds, bytes([bump])], program_id)
        if address is not None:
            return address, bump
    raise DerivationError("no bump seed produced an off-curve address")


def derive(owner: bytes, program_id: bytes) -> tuple[bytes, int]:
    """Storage address and bump seed for ``owner``'s conversation store."""
    return find_program_address([bytes(owner)], program_id)


# ── Text form ─────────────────────────────────────────────────


def parse_address(text: str) -> bytes:
    """Parse a 64-character hex address."""
    try:
        raw = bytes.fromhex(text.strip())
    except ValueError as exc:
        raise ValueError(f"not a hex address: {text!r}") from exc
    if len(raw) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes, got {len(raw)}")
    return raw


def format_address(address: bytes) -> str:
    return address.hex()
