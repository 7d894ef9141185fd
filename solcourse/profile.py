"""A user-profile program: create, update and close a profile account."""

from __future__ import annotations

import dataclasses
from contextlib import contextmanager
from dataclasses import dataclass
from typing import ClassVar, Iterator, Optional, Sequence, Union

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

_NAME_TOO_LONG = "名字长度超过限制"
_EMAIL_TOO_LONG = "邮箱长度超过限制"
_NAME_EMPTY = "名字不能为空"
_EMAIL_EMPTY = "邮箱不能为空"


class ProfileError(ValueError):
    """Raised when profile data breaks a length rule."""


@dataclass(frozen=True)
class CreateProfile:
    """Create a profile; accounts: payer (signer), profile (signer), system program."""

    name: str
    age: int
    email: str


@dataclass(frozen=True)
class UpdateProfile:
    """Update the given fields; accounts: owner (signer), profile."""

    name: Optional[str] = None
    age: Optional[int] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class CloseProfile:
    """Close a profile and return its lamports; accounts: owner (signer), profile."""


ProfileInstruction = Union[CreateProfile, UpdateProfile, CloseProfile]


def pack_instruction(instruction: ProfileInstruction) -> bytes:
    """Encode a profile instruction."""
    writer = BorshWriter()
    match instruction:
        case CreateProfile(name, age, email):
            writer.write_u8(0)
            writer.write_string(name)
            writer.write_u8(age)
            writer.write_string(email)
        case UpdateProfile(name, age, email):
            writer.write_u8(1)
            writer.write_option(name, writer.write_string)
            writer.write_option(age, writer.write_u8)
            writer.write_option(email, writer.write_string)
        case CloseProfile():
            writer.write_u8(2)
        case _:
            raise TypeError(f"not a profile instruction: {instruction!r}")
    return writer.getvalue()


def unpack_instruction(data: bytes) -> ProfileInstruction:
    """Decode a profile instruction, rejecting unknown tags and trailing bytes."""
    reader = BorshReader(data)
    tag = reader.read_u8()
    instruction: ProfileInstruction
    if tag == 0:
        instruction = CreateProfile(
            name=reader.read_string(), age=reader.read_u8(), email=reader.read_string()
        )
    elif tag == 1:
        instruction = UpdateProfile(
            name=reader.read_option(reader.read_string),
            age=reader.read_option(reader.read_u8),
            email=reader.read_option(reader.read_string),
        )
    elif tag == 2:
        instruction = CloseProfile()
    else:
        raise BorshError(f"unknown profile instruction {tag}")
    reader.finish()
    return instruction


def _padded(raw: bytes, size: int) -> bytes:
    return raw + bytes(size - len(raw))


@dataclass(frozen=True)
class UserProfile:
    """A profile stored in fixed-size fields; ``owner`` is the user it belongs to."""

    is_initialized: bool
    owner: Pubkey
    name_data: bytes
    name_len: int
    age: int
    email_data: bytes
    email_len: int

    MAX_NAME_LEN: ClassVar[int] = 32
    MAX_EMAIL_LEN: ClassVar[int] = 64

    def __post_init__(self) -> None:
        if len(self.name_data) != self.MAX_NAME_LEN:
            raise ValueError(f"name field is {self.MAX_NAME_LEN} bytes")
        if len(self.email_data) != self.MAX_EMAIL_LEN:
            raise ValueError(f"email field is {self.MAX_EMAIL_LEN} bytes")

    @classmethod
    def create(cls, owner: Pubkey, name: str, age: int, email: str) -> "UserProfile":
        """Build an initialised profile, checking name and email lengths."""
        name_raw = name.encode("utf-8")
        email_raw = email.encode("utf-8")
        if len(name_raw) > cls.MAX_NAME_LEN:
            raise ProfileError(_NAME_TOO_LONG)
        if len(email_raw) > cls.MAX_EMAIL_LEN:
            raise ProfileError(_EMAIL_TOO_LONG)
        if not name_raw:
            raise ProfileError(_NAME_EMPTY)
        if not email_raw:
            raise ProfileError(_EMAIL_EMPTY)
        return cls(
            is_initialized=True,
            owner=owner,
            name_data=_padded(name_raw, cls.MAX_NAME_LEN),
            name_len=len(name_raw),
            age=age,
            email_data=_padded(email_raw, cls.MAX_EMAIL_LEN),
            email_len=len(email_raw),
        )

    @classmethod
    def space(cls) -> int:
        """Bytes an account needs to hold a profile."""
        return 1 + 32 + cls.MAX_NAME_LEN + 1 + 1 + cls.MAX_EMAIL_LEN + 1

    def name(self) -> str:
        return self.name_data[: self.name_len].decode("utf-8", errors="replace")

    def email(self) -> str:
        return self.email_data[: self.email_len].decode("utf-8", errors="replace")

    def pack(self) -> bytes:
        writer = BorshWriter()
        writer.write_bool(self.is_initialized)
        writer.write_pubkey(self.owner)
        writer.write_bytes(self.name_data)
        writer.write_u8(self.name_len)
        writer.write_u8(self.age)
        writer.write_bytes(self.email_data)
        writer.write_u8(self.email_len)
        return writer.getvalue()

    @classmethod
    def unpack(cls, data: bytes) -> "UserProfile":
        reader = BorshReader(data)
        profile = cls(
            is_initialized=reader.read_bool(),
            owner=reader.read_pubkey(),
            name_data=reader.read_bytes(cls.MAX_NAME_LEN),
            name_len=reader.read_u8(),
            age=reader.read_u8(),
            email_data=reader.read_bytes(cls.MAX_EMAIL_LEN),
            email_len=reader.read_u8(),
        )
        reader.finish()
        return profile


def _with_name(profile: UserProfile, name: str) -> UserProfile:
    raw = name.encode("utf-8")
    if len(raw) > UserProfile.MAX_NAME_LEN:
        raise ProfileError(_NAME_TOO_LONG)
    if not raw:
        raise ProfileError(_NAME_EMPTY)
    return dataclasses.replace(
        profile, name_data=_padded(raw, UserProfile.MAX_NAME_LEN), name_len=len(raw)
    )


def _with_email(profile: UserProfile, email: str) -> UserProfile:
    raw = email.encode("utf-8")
    if len(raw) > UserProfile.MAX_EMAIL_LEN:
        raise ProfileError(_EMAIL_TOO_LONG)
    if not raw:
        raise ProfileError(_EMAIL_EMPTY)
    return dataclasses.replace(
        profile, email_data=_padded(raw, UserProfile.MAX_EMAIL_LEN), email_len=len(raw)
    )


@contextmanager
def _borsh_io() -> Iterator[None]:
    try:
        yield
    except BorshError as exc:
        raise ProgramError(ProgramErrorKind.BORSH_IO_ERROR) from exc


@contextmanager
def _invalid_data(context: str) -> Iterator[None]:
    try:
        yield
    except ProfileError as exc:
        msg(f"{context}: {exc}")
        raise ProgramError(ProgramErrorKind.INVALID_INSTRUCTION_DATA) from exc


def _require_signer(account: AccountInfo, message: str) -> None:
    if not account.is_signer:
        msg(message)
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)


def _load_owned(owner_info: AccountInfo, profile_info: AccountInfo, action: str) -> UserProfile:
    with _borsh_io():
        profile = UserProfile.unpack(profile_info.data)
    if not profile.is_initialized:
        msg("错误: 配置文件未初始化")
        raise ProgramError(ProgramErrorKind.UNINITIALIZED_ACCOUNT)
    if profile.owner != owner_info.key:
        msg(f"错误: 只有所有者可以{action}配置文件")
        raise ProgramError(ProgramErrorKind.ILLEGAL_OWNER)
    return profile


def _create_profile(
    program_id: Pubkey, accounts: Sequence[AccountInfo], name: str, age: int, email: str
) -> None:
    account_iter = iter(accounts)
    payer_info = next_account(account_iter)
    profile_info = next_account(account_iter)
    next_account(account_iter)

    _require_signer(payer_info, "错误: 付款人必须签名")
    _require_signer(profile_info, "错误: 配置文件账户必须签名")
    if profile_info.owner != program_id:
        msg("错误: 配置文件账户所有者必须是程序")
        raise ProgramError(ProgramErrorKind.INCORRECT_PROGRAM_ID)

    with _invalid_data("数据验证失败"):
        profile = UserProfile.create(payer_info.key, name, age, email)
    with _borsh_io():
        store(profile_info.data, profile.pack())
    msg("配置文件创建成功")


def _update_profile(
    accounts: Sequence[AccountInfo],
    name: Optional[str],
    age: Optional[int],
    email: Optional[str],
) -> None:
    account_iter = iter(accounts)
    owner_info = next_account(account_iter)
    profile_info = next_account(account_iter)

    _require_signer(owner_info, "错误: 所有者必须签名")
    profile = _load_owned(owner_info, profile_info, "更新")

    if name is not None:
        with _invalid_data("名字更新失败"):
            profile = _with_name(profile, name)
    if age is not None:
        profile = dataclasses.replace(profile, age=age)
    if email is not None:
        with _invalid_data("邮箱更新失败"):
            profile = _with_email(profile, email)

    with _borsh_io():
        store(profile_info.data, profile.pack())
    msg("配置文件更新成功")


def _close_profile(accounts: Sequence[AccountInfo]) -> None:
    account_iter = iter(accounts)
    owner_info = next_account(account_iter)
    profile_info = next_account(account_iter)

    _require_signer(owner_info, "错误: 所有者必须签名")
    _load_owned(owner_info, profile_info, "关闭")

    total = owner_info.lamports + profile_info.lamports
    if total > U64_MAX:
        raise ProgramError(ProgramErrorKind.ARITHMETIC_OVERFLOW)
    owner_info.lamports = total
    profile_info.lamports = 0
    profile_info.data[:] = bytes(len(profile_info.data))
    msg("配置文件关闭成功，租金已返还")


def process_instruction(
    program_id: Pubkey, accounts: Sequence[AccountInfo], instruction_data: bytes
) -> None:
    """Decode a profile instruction and carry it out."""
    try:
        instruction = unpack_instruction(instruction_data)
    except BorshError:
        raise ProgramError(ProgramErrorKind.INVALID_INSTRUCTION_DATA) from None

    match instruction:
        case CreateProfile(name, age, email):
            msg("指令: 创建配置文件")
            _create_profile(program_id, accounts, name, age, email)
        case UpdateProfile(name, age, email):
            msg("指令: 更新配置文件")
            _update_profile(accounts, name, age, email)
        case CloseProfile():
            msg("指令: 关闭配置文件")
            _close_profile(accounts)