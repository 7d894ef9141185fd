"""A transfer program: move lamports through the system program and record each move."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Sequence, Union

from .borsh import BorshError, BorshReader, BorshWriter, store
from .runtime import (
    AccountInfo,
    ProgramError,
    ProgramErrorKind,
    Pubkey,
    msg,
    next_account,
)
from .system import current_clock, find_program_address, transfer

VAULT_SEED = b"transfer_vault"


class TransferError(Enum):
    """Errors specific to the transfer program; the value is the custom error code."""

    INVALID_INSTRUCTION = 0
    UNINITIALIZED_ACCOUNT = 1
    INVALID_AMOUNT = 2

    @property
    def message(self) -> str:
        return _TRANSFER_ERROR_MESSAGES[self]

    def __str__(self) -> str:
        return self.message

    def to_program_error(self) -> ProgramError:
        """Return the custom program error carrying this error's code."""
        return ProgramError.custom(self.value)


_TRANSFER_ERROR_MESSAGES = {
    TransferError.INVALID_INSTRUCTION: "无效的指令",
    TransferError.UNINITIALIZED_ACCOUNT: "账户未初始化",
    TransferError.INVALID_AMOUNT: "金额无效",
}


@dataclass(frozen=True)
class TransferWithRecord:
    """Transfer from a signer; accounts: sender (signer), recipient, record, system."""

    amount: int


@dataclass(frozen=True)
class TransferFromPda:
    """Transfer from the program vault; accounts: vault PDA, recipient, record, system."""

    amount: int
    bump: int


TransferInstruction = Union[TransferWithRecord, TransferFromPda]


def pack_instruction(instruction: TransferInstruction) -> bytes:
    """Encode a transfer instruction."""
    writer = BorshWriter()
    match instruction:
        case TransferWithRecord(amount):
            writer.write_u8(0)
            writer.write_u64(amount)
        case TransferFromPda(amount, bump):
            writer.write_u8(1)
            writer.write_u64(amount)
            writer.write_u8(bump)
        case _:
            raise TypeError(f"not a transfer instruction: {instruction!r}")
    return writer.getvalue()


def unpack_instruction(data: bytes) -> TransferInstruction:
    """Decode a transfer instruction, rejecting unknown tags and trailing bytes."""
    reader = BorshReader(data)
    tag = reader.read_u8()
    instruction: TransferInstruction
    if tag == 0:
        instruction = TransferWithRecord(amount=reader.read_u64())
    elif tag == 1:
        instruction = TransferFromPda(amount=reader.read_u64(), bump=reader.read_u8())
    else:
        raise BorshError(f"unknown transfer instruction {tag}")
    reader.finish()
    return instruction


@dataclass
class TransferRecord:
    """The record of one transfer; ``timestamp`` is the slot it happened in."""

    is_initialized: bool
    sender: Pubkey
    recipient: Pubkey
    amount: int
    timestamp: int

    @classmethod
    def space(cls) -> int:
        """Bytes an account needs for a record."""
        return 1 + 32 + 32 + 8 + 8

    def pack(self) -> bytes:
        writer = BorshWriter()
        writer.write_bool(self.is_initialized)
        writer.write_pubkey(self.sender)
        writer.write_pubkey(self.recipient)
        writer.write_u64(self.amount)
        writer.write_u64(self.timestamp)
        return writer.getvalue()

    @classmethod
    def unpack(cls, data: bytes) -> "TransferRecord":
        """Decode a record from the start of ``data``; bytes after it are ignored."""
        reader = BorshReader(data)
        return cls(
            is_initialized=reader.read_bool(),
            sender=reader.read_pubkey(),
            recipient=reader.read_pubkey(),
            amount=reader.read_u64(),
            timestamp=reader.read_u64(),
        )


@contextmanager
def _borsh_io() -> Iterator[None]:
    try:
        yield
    except BorshError as exc:
        raise ProgramError(ProgramErrorKind.BORSH_IO_ERROR) from exc


def _check_amount(amount: int) -> None:
    if amount == 0:
        msg("错误: 金额必须大于0")
        raise TransferError.INVALID_AMOUNT.to_program_error()


def _check_record_owner(program_id: Pubkey, record_account: AccountInfo) -> None:
    if record_account.owner != program_id:
        msg("错误: 记录账户不属于此程序")
        raise ProgramError(ProgramErrorKind.INCORRECT_PROGRAM_ID)


def _save_record(record_account: AccountInfo, sender: Pubkey, recipient: Pubkey,
                 amount: int) -> None:
    record = TransferRecord(
        is_initialized=True,
        sender=sender,
        recipient=recipient,
        amount=amount,
        timestamp=current_clock().slot,
    )
    with _borsh_io():
        store(record_account.data, record.pack())
    msg("转账记录已保存")


def _transfer_with_record(
    program_id: Pubkey, accounts: Sequence[AccountInfo], amount: int
) -> None:
    account_iter = iter(accounts)
    sender = next_account(account_iter)
    recipient = next_account(account_iter)
    record_account = next_account(account_iter)
    next_account(account_iter)

    if not sender.is_signer:
        msg("错误: 发送者必须签名")
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)
    _check_amount(amount)
    _check_record_owner(program_id, record_account)

    msg(f"执行CPI: 从 {sender.key} 转账 {amount} lamports 到 {recipient.key}")
    transfer(sender, recipient, amount)
    msg("CPI转账成功")

    _save_record(record_account, sender.key, recipient.key, amount)


def _transfer_from_pda(
    program_id: Pubkey, accounts: Sequence[AccountInfo], amount: int, bump: int
) -> None:
    account_iter = iter(accounts)
    vault = next_account(account_iter)
    recipient = next_account(account_iter)
    record_account = next_account(account_iter)
    next_account(account_iter)

    _check_amount(amount)

    expected, expected_bump = find_program_address([VAULT_SEED], program_id)
    if vault.key != expected:
        msg("错误: PDA地址不匹配")
        raise ProgramError(ProgramErrorKind.INVALID_SEEDS)
    if bump != expected_bump:
        msg("错误: Bump seed不匹配")
        raise ProgramError(ProgramErrorKind.INVALID_SEEDS)

    _check_record_owner(program_id, record_account)

    msg(f"执行CPI: 从PDA {vault.key} 转账 {amount} lamports 到 {recipient.key}")
    transfer(
        vault,
        recipient,
        amount,
        signer_seeds=[[VAULT_SEED, bytes([bump])]],
        program_id=program_id,
    )
    msg("CPI转账成功（使用PDA签名）")

    _save_record(record_account, vault.key, recipient.key, amount)


def process_instruction(
    program_id: Pubkey, accounts: Sequence[AccountInfo], instruction_data: bytes
) -> None:
    """Decode a transfer instruction and carry it out."""
    try:
        instruction = unpack_instruction(instruction_data)
    except BorshError:
        raise ProgramError(ProgramErrorKind.INVALID_INSTRUCTION_DATA) from None

    match instruction:
        case TransferWithRecord(amount):
            msg("指令: 通过CPI转账并记录")
            _transfer_with_record(program_id, accounts, amount)
        case TransferFromPda(amount, bump):
            msg("指令: 使用PDA签名的CPI转账")
            _transfer_from_pda(program_id, accounts, amount, bump)