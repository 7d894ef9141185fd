"""A counter program: initialise, increment, decrement and reset a stored count."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterator, Sequence

from .basics import U64_MAX
from .borsh import BorshError, BorshReader, BorshWriter, store
from .runtime import (
    AccountInfo,
    ProgramError,
    ProgramErrorKind,
    Pubkey,
    msg,
    next_account,
)


class CounterInstruction(Enum):
    """The instructions the counter program accepts; each encodes as one byte."""

    INITIALIZE = 0
    INCREMENT = 1
    DECREMENT = 2
    RESET = 3

    def pack(self) -> bytes:
        return bytes([self.value])

    @classmethod
    def unpack(cls, data: bytes) -> "CounterInstruction":
        """Decode an instruction, rejecting unknown tags and trailing bytes."""
        reader = BorshReader(data)
        tag = reader.read_u8()
        try:
            instruction = cls(tag)
        except ValueError:
            raise BorshError(f"unknown counter instruction {tag}") from None
        reader.finish()
        return instruction


@dataclass
class Counter:
    """The counter state kept in an account: a u64 count and an initialised flag."""

    count: int = 0
    is_initialized: bool = False

    LEN: ClassVar[int] = 9

    def pack(self) -> bytes:
        writer = BorshWriter()
        writer.write_u64(self.count)
        writer.write_bool(self.is_initialized)
        return writer.getvalue()

    @classmethod
    def unpack(cls, data: bytes) -> "Counter":
        reader = BorshReader(data)
        counter = cls(count=reader.read_u64(), is_initialized=reader.read_bool())
        reader.finish()
        return counter


@contextmanager
def _borsh_io() -> Iterator[None]:
    try:
        yield
    except BorshError as exc:
        raise ProgramError(ProgramErrorKind.BORSH_IO_ERROR) from exc


def _counter_account(program_id: Pubkey, accounts: Sequence[AccountInfo]) -> AccountInfo:
    account = next_account(iter(accounts))
    if account.owner != program_id:
        msg("错误: 账户不属于此程序")
        raise ProgramError(ProgramErrorKind.INCORRECT_PROGRAM_ID)
    return account


def _load(account: AccountInfo) -> Counter:
    with _borsh_io():
        return Counter.unpack(account.data)


def _load_initialized(account: AccountInfo) -> Counter:
    counter = _load(account)
    if not counter.is_initialized:
        msg("错误: 账户未初始化")
        raise ProgramError(ProgramErrorKind.UNINITIALIZED_ACCOUNT)
    return counter


def _save(account: AccountInfo, counter: Counter) -> None:
    with _borsh_io():
        store(account.data, counter.pack())


def _initialize(program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
    account = _counter_account(program_id, accounts)
    counter = _load(account)
    if counter.is_initialized:
        msg("错误: 账户已经初始化")
        raise ProgramError(ProgramErrorKind.ACCOUNT_ALREADY_INITIALIZED)
    counter.count = 0
    counter.is_initialized = True
    _save(account, counter)
    msg("计数器初始化成功")


def _increment(program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
    account = _counter_account(program_id, accounts)
    counter = _load_initialized(account)
    if counter.count >= U64_MAX:
        raise ProgramError(ProgramErrorKind.INVALID_ACCOUNT_DATA)
    counter.count += 1
    _save(account, counter)
    msg(f"计数增加到: {counter.count}")


def _decrement(program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
    account = _counter_account(program_id, accounts)
    counter = _load_initialized(account)
    if counter.count == 0:
        raise ProgramError(ProgramErrorKind.INVALID_ACCOUNT_DATA)
    counter.count -= 1
    _save(account, counter)
    msg(f"计数减少到: {counter.count}")


def _reset(program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
    account = _counter_account(program_id, accounts)
    counter = _load_initialized(account)
    counter.count = 0
    _save(account, counter)
    msg("计数器已重置")


_HANDLERS = {
    CounterInstruction.INITIALIZE: ("指令: 初始化计数器", _initialize),
    CounterInstruction.INCREMENT: ("指令: 增加计数", _increment),
    CounterInstruction.DECREMENT: ("指令: 减少计数", _decrement),
    CounterInstruction.RESET: ("指令: 重置计数", _reset),
}


def process_instruction(
    program_id: Pubkey, accounts: Sequence[AccountInfo], instruction_data: bytes
) -> None:
    """Decode a counter instruction and apply it to the first account."""
    try:
        instruction = CounterInstruction.unpack(instruction_data)
    except BorshError:
        raise ProgramError(ProgramErrorKind.INVALID_INSTRUCTION_DATA) from None
    label, handler = _HANDLERS[instruction]
    msg(label)
    handler(program_id, accounts)