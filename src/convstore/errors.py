"""Error taxonomy shared by the codec, store, validator and router."""

from __future__ import annotations


class ProgramError(RuntimeError):
    """Base class for every error that aborts an invocation."""

    code = "program_error"


class InvalidInstructionData(ProgramError):
    """Raised when a payload does not decode into a known command."""

    code = "invalid_instruction_data"


class InvalidAccountData(ProgramError):
    """Raised when a non-empty account buffer fails to decode."""

    code = "invalid_account_data"


class NotEnoughAccountKeys(ProgramError):
    """Raised when an invocation is missing its storage account."""

    code = "not_enough_account_keys"


class AccountValidationError(ProgramError):
    """Raised when a supplied storage location is rejected."""

    code = "account_validation_error"


class AddressMismatch(AccountValidationError):
    code = "address_mismatch"


class AuthorityMismatch(AccountValidationError):
    code = "authority_mismatch"


class CapacityError(ProgramError):
    """Raised when every slot of a store is occupied."""

    code = "capacity_error"


class InvalidIndexError(ProgramError):
    """Raised when a removal targets a missing or empty slot."""

    code = "invalid_index"


class UnsupportedInstruction(ProgramError):
    """Raised for commands that are declared but have no handler yet."""

    code = "unsupported_instruction"


class DerivationError(ProgramError):
    """Raised when no bump seed yields a program-owned address.

    This signals bad seeds or a bad program id, not a recoverable state.
    """

    code = "derivation_error"
