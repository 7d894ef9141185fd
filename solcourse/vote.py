"""A voting program: topics and one vote per user, kept at program-derived addresses."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterator, Sequence, Union

from .borsh import BorshError, BorshReader, BorshWriter, store
from .runtime import (
    AccountInfo,
    ProgramError,
    ProgramErrorKind,
    Pubkey,
    msg,
    next_account,
)
from .system import Rent, create_account, find_program_address

TOPIC_SEED = b"vote_topic"
USER_VOTE_SEED = b"user_vote"


class VoteError(Enum):
    """Errors specific to the voting program; the value is the custom error code."""

    INVALID_INSTRUCTION = 0
    UNINITIALIZED_ACCOUNT = 1
    ALREADY_INITIALIZED = 2
    INVALID_PDA = 3
    ALREADY_VOTED = 4
    INVALID_VOTE_OPTION = 5

    @property
    def message(self) -> str:
        return _VOTE_ERROR_MESSAGES[self]

    def __str__(self) -> str:
        return self.message

    def to_program_error(self) -> ProgramError:
        """Return the custom program error carrying this error's code."""
        return ProgramError.custom(self.value)


_VOTE_ERROR_MESSAGES = {
    VoteError.INVALID_INSTRUCTION: "无效的指令",
    VoteError.UNINITIALIZED_ACCOUNT: "账户未初始化",
    VoteError.ALREADY_INITIALIZED: "账户已初始化",
    VoteError.INVALID_PDA: "PDA派生失败",
    VoteError.ALREADY_VOTED: "已经投过票",
    VoteError.INVALID_VOTE_OPTION: "投票选项无效",
}


@dataclass(frozen=True)
class CreateTopic:
    """Create a topic; accounts: creator (signer), topic PDA, system program."""

    description: str
    bump: int


@dataclass(frozen=True)
class Vote:
    """Vote for option 0 (A) or 1 (B); accounts: voter (signer), topic, vote PDA, system."""

    option: int
    bump: int


VoteInstruction = Union[CreateTopic, Vote]


def pack_instruction(instruction: VoteInstruction) -> bytes:
    """Encode a voting instruction."""
    writer = BorshWriter()
    match instruction:
        case CreateTopic(description, bump):
            writer.write_u8(0)
            writer.write_string(description)
            writer.write_u8(bump)
        case Vote(option, bump):
            writer.write_u8(1)
            writer.write_u8(option)
            writer.write_u8(bump)
        case _:
            raise TypeError(f"not a voting instruction: {instruction!r}")
    return writer.getvalue()


def unpack_instruction(data: bytes) -> VoteInstruction:
    """Decode a voting instruction, rejecting unknown tags and trailing bytes."""
    reader = BorshReader(data)
    tag = reader.read_u8()
    instruction: VoteInstruction
    if tag == 0:
        instruction = CreateTopic(description=reader.read_string(), bump=reader.read_u8())
    elif tag == 1:
        instruction = Vote(option=reader.read_u8(), bump=reader.read_u8())
    else:
        raise BorshError(f"unknown voting instruction {tag}")
    reader.finish()
    return instruction


@dataclass
class VoteTopic:
    """A topic with its description and the votes for each option."""

    is_initialized: bool
    creator: Pubkey
    description: str
    option_a_votes: int = 0
    option_b_votes: int = 0
    bump: int = 0

    MAX_DESCRIPTION_LEN: ClassVar[int] = 200

    @classmethod
    def space(cls, description_len: int) -> int:
        """Bytes an account needs for a topic with a description of this length."""
        return 1 + 32 + 4 + description_len + 8 + 8 + 1

    def pack(self) -> bytes:
        writer = BorshWriter()
        writer.write_bool(self.is_initialized)
        writer.write_pubkey(self.creator)
        writer.write_string(self.description)
        writer.write_u64(self.option_a_votes)
        writer.write_u64(self.option_b_votes)
        writer.write_u8(self.bump)
        return writer.getvalue()

    @classmethod
    def unpack(cls, data: bytes) -> "VoteTopic":
        """Decode a topic from the start of ``data``; bytes after it are ignored."""
        reader = BorshReader(data)
        return cls(
            is_initialized=reader.read_bool(),
            creator=reader.read_pubkey(),
            description=reader.read_string(),
            option_a_votes=reader.read_u64(),
            option_b_votes=reader.read_u64(),
            bump=reader.read_u8(),
        )


@dataclass
class UserVote:
    """The record of one user's vote on one topic."""

    is_initialized: bool
    topic: Pubkey
    voter: Pubkey
    vote_option: int
    bump: int

    @classmethod
    def space(cls) -> int:
        """Bytes an account needs for a vote record."""
        return 1 + 32 + 32 + 1 + 1

    def pack(self) -> bytes:
        writer = BorshWriter()
        writer.write_bool(self.is_initialized)
        writer.write_pubkey(self.topic)
        writer.write_pubkey(self.voter)
        writer.write_u8(self.vote_option)
        writer.write_u8(self.bump)
        return writer.getvalue()

    @classmethod
    def unpack(cls, data: bytes) -> "UserVote":
        """Decode a vote record from the start of ``data``; bytes after it are ignored."""
        reader = BorshReader(data)
        return cls(
            is_initialized=reader.read_bool(),
            topic=reader.read_pubkey(),
            voter=reader.read_pubkey(),
            vote_option=reader.read_u8(),
            bump=reader.read_u8(),
        )


@contextmanager
def _borsh_io() -> Iterator[None]:
    try:
        yield
    except BorshError as exc:
        raise ProgramError(ProgramErrorKind.BORSH_IO_ERROR) from exc


def _check_pda(account: AccountInfo, bump: int, expected: Pubkey, expected_bump: int,
               message: str) -> None:
    if account.key != expected:
        msg(message)
        raise VoteError.INVALID_PDA.to_program_error()
    if bump != expected_bump:
        msg("错误: Bump seed不匹配")
        raise VoteError.INVALID_PDA.to_program_error()


def _create_topic(
    program_id: Pubkey, accounts: Sequence[AccountInfo], description: str, bump: int
) -> None:
    account_iter = iter(accounts)
    creator = next_account(account_iter)
    topic_account = next_account(account_iter)
    next_account(account_iter)

    if not creator.is_signer:
        msg("错误: 创建者必须签名")
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)

    description_len = len(description.encode("utf-8"))
    if description_len > VoteTopic.MAX_DESCRIPTION_LEN:
        msg("错误: 描述过长")
        raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT)

    expected, expected_bump = find_program_address([TOPIC_SEED, creator.key], program_id)
    _check_pda(topic_account, bump, expected, expected_bump, "错误: PDA地址不匹配")

    space = VoteTopic.space(description_len)
    create_account(
        creator,
        topic_account,
        Rent().minimum_balance(space),
        space,
        program_id,
        signer_seeds=[[TOPIC_SEED, creator.key, bytes([bump])]],
        program_id=program_id,
    )

    topic = VoteTopic(is_initialized=True, creator=creator.key, description=description,
                      bump=bump)
    with _borsh_io():
        store(topic_account.data, topic.pack())
    msg("投票主题创建成功")


def _vote(program_id: Pubkey, accounts: Sequence[AccountInfo], option: int, bump: int) -> None:
    account_iter = iter(accounts)
    voter = next_account(account_iter)
    topic_account = next_account(account_iter)
    vote_account = next_account(account_iter)
    next_account(account_iter)

    if not voter.is_signer:
        msg("错误: 投票者必须签名")
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)
    if option > 1:
        msg("错误: 投票选项无效")
        raise VoteError.INVALID_VOTE_OPTION.to_program_error()
    if topic_account.owner != program_id:
        msg("错误: 主题账户不属于此程序")
        raise ProgramError(ProgramErrorKind.INCORRECT_PROGRAM_ID)

    with _borsh_io():
        topic = VoteTopic.unpack(topic_account.data)
    if not topic.is_initialized:
        msg("错误: 主题未初始化")
        raise VoteError.UNINITIALIZED_ACCOUNT.to_program_error()

    expected, expected_bump = find_program_address(
        [USER_VOTE_SEED, topic_account.key, voter.key], program_id
    )
    _check_pda(vote_account, bump, expected, expected_bump, "错误: 用户投票记录PDA地址不匹配")

    if vote_account.owner == program_id and len(vote_account.data) > 0:
        msg("错误: 已经投过票")
        raise VoteError.ALREADY_VOTED.to_program_error()

    if len(vote_account.data) == 0:
        space = UserVote.space()
        create_account(
            voter,
            vote_account,
            Rent().minimum_balance(space),
            space,
            program_id,
            signer_seeds=[[USER_VOTE_SEED, topic_account.key, voter.key, bytes([bump])]],
            program_id=program_id,
        )

    record = UserVote(is_initialized=True, topic=topic_account.key, voter=voter.key,
                      vote_option=option, bump=bump)
    with _borsh_io():
        store(vote_account.data, record.pack())

    if option == 0:
        topic.option_a_votes += 1
        msg("投票给选项A")
    else:
        topic.option_b_votes += 1
        msg("投票给选项B")

    with _borsh_io():
        store(topic_account.data, topic.pack())
    msg("投票成功")


def process_instruction(
    program_id: Pubkey, accounts: Sequence[AccountInfo], instruction_data: bytes
) -> None:
    """Decode a voting instruction and carry it out."""
    try:
        instruction = unpack_instruction(instruction_data)
    except BorshError:
        raise ProgramError(ProgramErrorKind.INVALID_INSTRUCTION_DATA) from None

    match instruction:
        case CreateTopic(description, bump):
            msg("指令: 创建投票主题")
            _create_topic(program_id, accounts, description, bump)
        case Vote(option, bump):
            msg("指令: 投票")
            _vote(program_id, accounts, option, bump)