"""Storage-account gate evaluated before any mutation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from convstore.address import derive, format_address
from convstore.errors import AddressMismatch, AuthorityMismatch

logger = logging.getLogger(__name__)


@dataclass
class StorageAccount:
    """A caller-supplied storage location, its authority and its buffer."""

    address: bytes
    authority: bytes
    data: bytes = b""


def validate(
    expected_owner: bytes,
    program_id: bytes,
    supplied_location: bytes,
    supplied_authority: bytes,
) -> int:
    """Check that ``supplied_location`` is ``expected_owner``'s store.

    Returns the bump seed of the derived address. Raises AddressMismatch when
    the location is not the derived one, AuthorityMismatch when the location
    is not controlled by ``program_id``.
    """
    expected, bump = derive(expected_owner, program_id)
    if supplied_location != expected:
        logger.warning(
            "Storage location %s does not match derived %s",
            format_address(supplied_location),
            format_address(expected),
        )
        raise AddressMismatch(
            f"expected storage location {format_address(expected)}, "
            f"got {format_address(supplied_location)}"
        )
    if supplied_authority != program_id:
        logger.warning("Storage location %s has foreign authority", format_address(supplied_location))
        raise AuthorityMismatch(
            f"storage location is controlled by {format_address(supplied_authority)}, "
            f"not by program {format_address(program_id)}"
        )
    return bump
