"""A minimal program that greets and reports what it was called with."""

from __future__ import annotations

from typing import Sequence

from .runtime import AccountInfo, Pubkey, msg


def process_instruction(
    program_id: Pubkey, accounts: Sequence[AccountInfo], instruction_data: bytes
) -> None:
    """Log a greeting, the program id and the number of accounts."""
    msg("Hello, Solana!")
    msg(f"程序ID: {program_id}")
    msg(f"账户数量: {len(accounts)}")