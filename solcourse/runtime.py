"""Core on-chain runtime types: public keys, program errors and account views."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

PUBKEY_BYTES = 32

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_unique_counter = itertools.count(1)
_logger = logging.getLogger("solcourse.program")


def _base58(data: bytes) -> str:
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(_BASE58_ALPHABET[remainder])
    leading_zeros = len(data) - len(data.lstrip(b"\0"))
    return "1" * leading_zeros + "".join(reversed(digits))


@dataclass(frozen=True)
class Pubkey:
    """A 32-byte account address."""

    value: bytes

    def __post_init__(self) -> None:
        raw = bytes(self.value)
        if len(raw) != PUBKEY_BYTES:
            raise ValueError(f"a public key is {PUBKEY_BYTES} bytes, got {len(raw)}")
        object.__setattr__(self, "value", raw)

    @classmethod
    def new_unique(cls) -> "Pubkey":
        """Return a key that no earlier call in this process has returned."""
        number = next(_unique_counter)
        return cls(number.to_bytes(8, "big") + bytes(PUBKEY_BYTES - 8))

    @classmethod
    def default(cls) -> "Pubkey":
        """Return the all-zero key."""
        return cls(bytes(PUBKEY_BYTES))

    def __str__(self) -> str:
        return _base58(self.value)

    def __repr__(self) -> str:
        return f"Pubkey({self})"

    def __bytes__(self) -> bytes:
        return self.value


SYSTEM_PROGRAM_ID = Pubkey.default()


class ProgramErrorKind(Enum):
    """The kinds of error a program can return."""

    CUSTOM = "Custom"
    INVALID_ARGUMENT = "InvalidArgument"
    INVALID_INSTRUCTION_DATA = "InvalidInstructionData"
    INVALID_ACCOUNT_DATA = "InvalidAccountData"
    ACCOUNT_DATA_TOO_SMALL = "AccountDataTooSmall"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    INCORRECT_PROGRAM_ID = "IncorrectProgramId"
    MISSING_REQUIRED_SIGNATURE = "MissingRequiredSignature"
    ACCOUNT_ALREADY_INITIALIZED = "AccountAlreadyInitialized"
    UNINITIALIZED_ACCOUNT = "UninitializedAccount"
    NOT_ENOUGH_ACCOUNT_KEYS = "NotEnoughAccountKeys"
    ACCOUNT_BORROW_FAILED = "AccountBorrowFailed"
    MAX_SEED_LENGTH_EXCEEDED = "MaxSeedLengthExceeded"
    INVALID_SEEDS = "InvalidSeeds"
    BORSH_IO_ERROR = "BorshIoError"
    ACCOUNT_NOT_RENT_EXEMPT = "AccountNotRentExempt"
    UNSUPPORTED_SYSVAR = "UnsupportedSysvar"
    ILLEGAL_OWNER = "IllegalOwner"
    ARITHMETIC_OVERFLOW = "ArithmeticOverflow"


class ProgramError(Exception):
    """An error returned by a program; custom errors carry a numeric code."""

    def __init__(self, kind: ProgramErrorKind, code: Optional[int] = None) -> None:
        if (kind is ProgramErrorKind.CUSTOM) != (code is not None):
            raise ValueError("a code is given exactly for custom errors")
        self.kind = kind
        self.code = code
        text = f"custom program error: {code:#x}" if code is not None else kind.value
        super().__init__(text)

    @classmethod
    def custom(cls, code: int) -> "ProgramError":
        return cls(ProgramErrorKind.CUSTOM, code)


@dataclass
class AccountInfo:
    """A program's view of one account passed to an instruction."""

    key: Pubkey
    owner: Pubkey = SYSTEM_PROGRAM_ID
    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    is_signer: bool = False
    is_writable: bool = True
    executable: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)


def next_account(accounts: Iterator[AccountInfo]) -> AccountInfo:
    """Take the next account from an iterator of accounts."""
    try:
        return next(accounts)
    except StopIteration:
        raise ProgramError(ProgramErrorKind.NOT_ENOUGH_ACCOUNT_KEYS) from None


def msg(text: str) -> None:
    """Write a line to the program log."""
    _logger.info(text)