import pytest

from solcourse.borsh import BorshError
from solcourse.profile import (
    CloseProfile,
    CreateProfile,
    ProfileError,
    UpdateProfile,
    UserProfile,
    pack_instruction,
    process_instruction,
    unpack_instruction,
)
from solcourse.runtime import (
    SYSTEM_PROGRAM_ID,
    AccountInfo,
    ProgramError,
    ProgramErrorKind,
    Pubkey,
)
from solcourse.system import Rent, create_account

_SIMPLE = CreateProfile(name="n", age=1, email="e@example.com")


def _setup(program_id):
    payer = AccountInfo(key=Pubkey.new_unique(), lamports=10**9, is_signer=True)
    profile = AccountInfo(key=Pubkey.new_unique(), is_signer=True)
    system = AccountInfo(key=SYSTEM_PROGRAM_ID, executable=True, is_writable=False)
    space = UserProfile.space()
    create_account(payer, profile, Rent().minimum_balance(space), space, program_id)
    return payer, profile, system


def _run(program_id, accounts, instruction):
    process_instruction(program_id, accounts, pack_instruction(instruction))


def _error(program_id, accounts, instruction):
    with pytest.raises(ProgramError) as info:
        _run(program_id, accounts, instruction)
    return info.value


def _create(program_id, name, age, email):
    payer, profile, system = _setup(program_id)
    _run(program_id, [payer, profile, system], CreateProfile(name=name, age=age, email=email))
    return payer, profile


def test_create_profile():
    program_id = Pubkey.new_unique()
    payer, profile_info = _create(program_id, "张三", 25, "zhangsan@example.com")
    profile = UserProfile.unpack(profile_info.data)
    assert profile.is_initialized
    assert profile.owner == payer.key
    assert profile.name() == "张三"
    assert profile.age == 25
    assert profile.email() == "zhangsan@example.com"


def test_update_profile():
    program_id = Pubkey.new_unique()
    payer, profile_info = _create(program_id, "李四", 30, "lisi@example.com")
    _run(program_id, [payer, profile_info], UpdateProfile(name="李四更新", age=31, email=None))
    profile = UserProfile.unpack(profile_info.data)
    assert profile.name() == "李四更新"
    assert profile.age == 31
    assert profile.email() == "lisi@example.com"


def test_close_profile():
    program_id = Pubkey.new_unique()
    payer, profile_info = _create(program_id, "王五", 28, "wangwu@example.com")
    balance_before = payer.lamports
    rent = profile_info.lamports
    _run(program_id, [payer, profile_info], CloseProfile())
    assert profile_info.lamports == 0
    assert profile_info.data == bytearray(UserProfile.space())
    assert payer.lamports > balance_before
    assert payer.lamports == balance_before + rent


def test_rent_calculation():
    space = UserProfile.space()
    rent = Rent()
    lamports = rent.minimum_balance(space)
    assert lamports > 0
    assert rent.is_exempt(lamports, space)
    assert not rent.is_exempt(lamports - 1, space)


def test_ownership_check():
    program_id = Pubkey.new_unique()
    _, profile_info = _create(program_id, "赵六", 35, "zhaoliu@example.com")
    before = bytes(profile_info.data)
    intruder = AccountInfo(key=Pubkey.new_unique(), is_signer=True)
    error = _error(program_id, [intruder, profile_info], UpdateProfile(name="未授权更新"))
    assert error.kind is ProgramErrorKind.ILLEGAL_OWNER
    assert bytes(profile_info.data) == before


def _all(payer, profile, system):
    return [payer, profile, system]


def _unsigned_payer(payer, profile, system):
    payer.is_signer = False
    return [payer, profile, system]


def _foreign_profile(payer, profile, system):
    profile.owner = Pubkey.new_unique()
    return [payer, profile, system]


def _no_system(payer, profile, system):
    return [payer, profile]


@pytest.mark.parametrize(
    "arrange, instruction, kind",
    [
        (
            _all,
            CreateProfile(name="a" * (UserProfile.MAX_NAME_LEN + 1), age=25, email="test@example.com"),
            ProgramErrorKind.INVALID_INSTRUCTION_DATA,
        ),
        (_unsigned_payer, _SIMPLE, ProgramErrorKind.MISSING_REQUIRED_SIGNATURE),
        (_foreign_profile, _SIMPLE, ProgramErrorKind.INCORRECT_PROGRAM_ID),
        (_no_system, _SIMPLE, ProgramErrorKind.NOT_ENOUGH_ACCOUNT_KEYS),
    ],
    ids=["data_validation", "payer_signature", "program_owned", "system_account"],
)
def test_create_rejected(arrange, instruction, kind):
    program_id = Pubkey.new_unique()
    payer, profile_info, system = _setup(program_id)
    error = _error(program_id, arrange(payer, profile_info, system), instruction)
    assert error.kind is kind
    assert profile_info.data == bytearray(UserProfile.space())


def test_space_and_layout():
    assert UserProfile.space() == 132
    owner = Pubkey.new_unique()
    profile = UserProfile.create(owner, "a", 7, "b@example.com")
    packed = profile.pack()
    assert len(packed) == UserProfile.space()
    assert packed[0] == 1
    assert packed[1:33] == bytes(owner)
    assert UserProfile.unpack(packed) == profile


@pytest.mark.parametrize(
    "name, email, message",
    [
        ("a" * 33, "x@example.com", "名字长度超过限制"),
        ("a", "e" * 65, "邮箱长度超过限制"),
        ("", "x@example.com", "名字不能为空"),
        ("a", "", "邮箱不能为空"),
        ("", "e" * 65, "邮箱长度超过限制"),
    ],
)
def test_create_validation_messages(name, email, message):
    with pytest.raises(ProfileError, match=message):
        UserProfile.create(Pubkey.new_unique(), name, 1, email)


def test_name_limit_counts_bytes():
    owner = Pubkey.new_unique()
    assert UserProfile.create(owner, "a" * 32, 1, "x@example.com").name_len == 32
    with pytest.raises(ProfileError):
        UserProfile.create(owner, "张" * 11, 1, "x@example.com")


@pytest.mark.parametrize(
    "instruction",
    [
        CreateProfile(name="张三", age=25, email="zhangsan@example.com"),
        UpdateProfile(name="n", age=None, email="e@example.com"),
        UpdateProfile(),
        CloseProfile(),
    ],
)
def test_instruction_round_trip(instruction):
    assert unpack_instruction(pack_instruction(instruction)) == instruction


@pytest.mark.parametrize(
    "instruction, encoded",
    [
        (CloseProfile(), b"\x02"),
        (UpdateProfile(), b"\x01\x00\x00\x00"),
        (UpdateProfile(age=31), b"\x01\x00\x01\x1f\x00"),
        (CreateProfile(name="a", age=2, email="b"), b"\x00\x01\x00\x00\x00a\x02\x01\x00\x00\x00b"),
    ],
)
def test_instruction_encoding(instruction, encoded):
    assert pack_instruction(instruction) == encoded


@pytest.mark.parametrize("data", [b"", b"\x03", b"\x02\x00", b"\x01\x02\x00\x00"])
def test_unpack_rejects_bad_data(data):
    with pytest.raises(BorshError):
        unpack_instruction(data)


def test_invalid_instruction_data():
    with pytest.raises(ProgramError) as info:
        process_instruction(Pubkey.new_unique(), [], b"\x07")
    assert info.value.kind is ProgramErrorKind.INVALID_INSTRUCTION_DATA


def test_update_uninitialized_profile():
    program_id = Pubkey.new_unique()
    payer, profile_info, _ = _setup(program_id)
    error = _error(program_id, [payer, profile_info], UpdateProfile(age=3))
    assert error.kind is ProgramErrorKind.UNINITIALIZED_ACCOUNT


def test_update_with_invalid_email_writes_nothing():
    program_id = Pubkey.new_unique()
    payer, profile_info = _create(program_id, "n", 1, "e@example.com")
    before = bytes(profile_info.data)
    error = _error(program_id, [payer, profile_info], UpdateProfile(name="other", email=""))
    assert error.kind is ProgramErrorKind.INVALID_INSTRUCTION_DATA
    assert bytes(profile_info.data) == before


def test_close_requires_signature():
    program_id = Pubkey.new_unique()
    payer, profile_info = _create(program_id, "n", 1, "e@example.com")
    payer.is_signer = False
    error = _error(program_id, [payer, profile_info], CloseProfile())
    assert error.kind is ProgramErrorKind.MISSING_REQUIRED_SIGNATURE
    assert profile_info.lamports > 0