"""System services: rent, the clock, program addresses and the system program."""

from __future__ import annotations

import hashlib
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence, Set, Tuple, Union

from .runtime import (
    SYSTEM_PROGRAM_ID,
    AccountInfo,
    ProgramError,
    ProgramErrorKind,
    Pubkey,
)

ACCOUNT_STORAGE_OVERHEAD = 128
MAX_SEEDS = 16
MAX_SEED_LEN = 32
MAX_PERMITTED_DATA_LENGTH = 10 * 1024 * 1024
PDA_MARKER = b"ProgramDerivedAddress"

# System program error codes.
ACCOUNT_ALREADY_IN_USE = 0
RESULT_WITH_NEGATIVE_LAMPORTS = 1
INVALID_ACCOUNT_DATA_LENGTH = 3

_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P

Seed = Union[bytes, bytearray, Pubkey]


@dataclass(frozen=True)
class Rent:
    """Rent parameters; an account holding the minimum balance is exempt."""

    lamports_per_byte_year: int = 3480
    exemption_threshold: float = 2.0
    burn_percent: int = 50

    def minimum_balance(self, data_len: int) -> int:
        bytes_charged = ACCOUNT_STORAGE_OVERHEAD + data_len
        return int(float(bytes_charged * self.lamports_per_byte_year) * self.exemption_threshold)

    def is_exempt(self, lamports: int, data_len: int) -> bool:
        return lamports >= self.minimum_balance(data_len)


@dataclass(frozen=True)
class Clock:
    """The cluster clock as seen by a program."""

    slot: int = 0
    epoch_start_timestamp: int = 0
    epoch: int = 0
    leader_schedule_epoch: int = 0
    unix_timestamp: int = 0


_CLOCK: ContextVar[Clock] = ContextVar("clock", default=Clock())


def current_clock() -> Clock:
    """Return the clock in effect for the running code."""
    return _CLOCK.get()


@contextmanager
def use_clock(clock: Clock) -> Iterator[Clock]:
    """Make ``clock`` the current clock inside the block."""
    token = _CLOCK.set(clock)
    try:
        yield clock
    finally:
        _CLOCK.reset(token)


def is_on_curve(data: bytes) -> bool:
    """Tell whether 32 bytes decompress to a point on the ed25519 curve."""
    y = int.from_bytes(bytes(data), "little") & ((1 << 255) - 1)
    y %= _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def create_program_address(seeds: Sequence[Seed], program_id: Pubkey) -> Pubkey:
    """Derive a program address from seeds; fail if it lies on the curve."""
    raw_seeds = [bytes(seed) for seed in seeds]
    if len(raw_seeds) > MAX_SEEDS:
        raise ProgramError(ProgramErrorKind.MAX_SEED_LENGTH_EXCEEDED)
    if any(len(seed) > MAX_SEED_LEN for seed in raw_seeds):
        raise ProgramError(ProgramErrorKind.MAX_SEED_LENGTH_EXCEEDED)
    hasher = hashlib.sha256()
    for seed in raw_seeds:
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)
    digest = hasher.digest()
    if is_on_curve(digest):
        raise ProgramError(ProgramErrorKind.INVALID_SEEDS)
    return Pubkey(digest)


def find_program_address(seeds: Sequence[Seed], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Find the valid program address with the highest bump seed."""
    for bump in range(255, 0, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except ProgramError as err:
            if err.kind is not ProgramErrorKind.INVALID_SEEDS:
                raise
    raise ProgramError(ProgramErrorKind.INVALID_SEEDS)


def _pda_signers(
    signer_seeds: Iterable[Sequence[Seed]], program_id: Optional[Pubkey]
) -> Set[Pubkey]:
    seed_sets = list(signer_seeds)
    if seed_sets and program_id is None:
        raise ValueError("signer seeds need the calling program's id")
    return {create_program_address(seeds, program_id) for seeds in seed_sets}


def _has_signed(account: AccountInfo, signers: Set[Pubkey]) -> bool:
    return account.is_signer or account.key in signers


def _check_debit(source: AccountInfo, lamports: int, signers: Set[Pubkey]) -> None:
    if lamports < 0:
        raise ValueError("lamports must not be negative")
    if not _has_signed(source, signers):
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)
    if source.data:
        raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT)
    if lamports > source.lamports:
        raise ProgramError.custom(RESULT_WITH_NEGATIVE_LAMPORTS)


def create_account(
    payer: AccountInfo,
    new_account: AccountInfo,
    lamports: int,
    space: int,
    owner: Pubkey,
    signer_seeds: Iterable[Sequence[Seed]] = (),
    program_id: Optional[Pubkey] = None,
) -> None:
    """Fund a fresh account, give it zeroed data of ``space`` bytes and assign it."""
    signers = _pda_signers(signer_seeds, program_id)
    if new_account.lamports > 0:
        raise ProgramError.custom(ACCOUNT_ALREADY_IN_USE)
    if not _has_signed(new_account, signers):
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)
    if new_account.data or new_account.owner != SYSTEM_PROGRAM_ID:
        raise ProgramError.custom(ACCOUNT_ALREADY_IN_USE)
    if not 0 <= space <= MAX_PERMITTED_DATA_LENGTH:
        raise ProgramError.custom(INVALID_ACCOUNT_DATA_LENGTH)
    _check_debit(payer, lamports, signers)

    new_account.data = bytearray(space)
    new_account.owner = owner
    payer.lamports -= lamports
    new_account.lamports += lamports


def transfer(
    source: AccountInfo,
    destination: AccountInfo,
    lamports: int,
    signer_seeds: Iterable[Sequence[Seed]] = (),
    program_id: Optional[Pubkey] = None,
) -> None:
    """Move lamports from a signing system account to another account."""
    signers = _pda_signers(signer_seeds, program_id)
    _check_debit(source, lamports, signers)
    source.lamports -= lamports
    destination.lamports += lamports