"""Plain models of lamports, accounts and transfer transactions."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List

from .runtime import SYSTEM_PROGRAM_ID, Pubkey

LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = 2**64 - 1


class SolanaError(Exception):
    """Base class for errors in these models."""


class InsufficientFundsError(SolanaError):
    """Raised when a balance is too small for the amount asked for."""

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(f"资金不足：需要 {required}，但只有 {available}")


class InvalidOperationError(SolanaError):
    """Raised for an operation that is not allowed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"无效的操作：{reason}")


@dataclass(frozen=True)
class Lamports:
    """An amount in lamports, the smallest unit of SOL."""

    lamports: int

    def __post_init__(self) -> None:
        if not 0 <= self.lamports <= U64_MAX:
            raise ValueError(f"lamports out of range: {self.lamports}")

    @classmethod
    def from_sol(cls, sol: float) -> "Lamports":
        """Convert SOL to lamports, truncating and saturating at the u64 range."""
        raw = sol * float(LAMPORTS_PER_SOL)
        if math.isnan(raw) or raw <= 0:
            return cls(0)
        if raw >= 2.0**64:
            return cls(U64_MAX)
        return cls(int(raw))

    def __int__(self) -> int:
        return self.lamports

    def __add__(self, other: object) -> "Lamports":
        if not isinstance(other, Lamports):
            return NotImplemented
        total = self.lamports + other.lamports
        if total > U64_MAX:
            raise OverflowError("lamports overflow")
        return Lamports(total)

    def __sub__(self, other: object) -> "Lamports":
        if not isinstance(other, Lamports):
            return NotImplemented
        if self.lamports < other.lamports:
            raise InsufficientFundsError(required=other.lamports, available=self.lamports)
        return Lamports(self.lamports - other.lamports)

    def __str__(self) -> str:
        return f"{self.lamports} lamports"


@dataclass
class Account:
    """An account holding lamports and data, owned by a program."""

    owner: Pubkey
    lamports: int
    data: bytes = b""
    executable: bool = False


@dataclass(frozen=True)
class Instruction:
    """A call to a program with the accounts and data it needs."""

    program_id: Pubkey
    accounts: tuple
    data: bytes


@dataclass
class Transaction:
    """A list of instructions paid for by one account."""

    payer: Pubkey
    instructions: List[Instruction] = field(default_factory=list)
    signed: bool = False

    @classmethod
    def new_transfer(cls, sender: Pubkey, recipient: Pubkey, lamports: int) -> "Transaction":
        """Build an unsigned transaction moving lamports between two accounts."""
        instruction = Instruction(
            program_id=SYSTEM_PROGRAM_ID,
            accounts=(sender, recipient),
            data=lamports.to_bytes(8, "little"),
        )
        return cls(payer=sender, instructions=[instruction])

    def sign(self) -> None:
        self.signed = True