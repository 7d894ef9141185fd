import pytest

from solcourse.runtime import AccountInfo, ProgramError, ProgramErrorKind, Pubkey
from solcourse.system import (
    Clock,
    Rent,
    create_account,
    create_program_address,
    current_clock,
    find_program_address,
    is_on_curve,
    transfer,
    use_clock,
)


def _error(func, *args, **kwargs):
    with pytest.raises(ProgramError) as info:
        func(*args, **kwargs)
    return info.value


def _payer(lamports=1_000_000):
    return AccountInfo(key=Pubkey.new_unique(), lamports=lamports, is_signer=True)


def test_rent_minimum_balance_empty_account():
    assert Rent().minimum_balance(0) == 890880


def test_rent_is_exempt():
    rent = Rent()
    space = 131
    lamports = rent.minimum_balance(space)
    assert lamports > 0
    assert rent.is_exempt(lamports, space)
    assert not rent.is_exempt(lamports - 1, space)
    assert rent.minimum_balance(space + 1) > lamports


def test_clock_context():
    assert current_clock().slot == 0
    with use_clock(Clock(slot=42)) as clock:
        assert current_clock() is clock
        assert current_clock().slot == 42
    assert current_clock().slot == 0


def test_identity_point_on_curve():
    assert is_on_curve(b"\x01" + bytes(31)) is True


def test_find_program_address_is_off_curve():
    program_id = Pubkey.new_unique()
    seeds = [b"vote_topic", bytes(Pubkey.new_unique())]
    pda, bump = find_program_address(seeds, program_id)
    assert 0 < bump <= 255
    assert not is_on_curve(bytes(pda))
    assert create_program_address([*seeds, bytes([bump])], program_id) == pda


def test_find_program_address_takes_highest_bump():
    program_id = Pubkey.new_unique()
    seeds = [b"transfer_vault"]
    pda, bump = find_program_address(seeds, program_id)
    for higher in range(bump + 1, 256):
        error = _error(create_program_address, [*seeds, bytes([higher])], program_id)
        assert error.kind is ProgramErrorKind.INVALID_SEEDS
    assert find_program_address(seeds, program_id) == (pda, bump)


def test_program_address_depends_on_program():
    seeds = [b"transfer_vault"]
    first, _ = find_program_address(seeds, Pubkey.new_unique())
    second, _ = find_program_address(seeds, Pubkey.new_unique())
    assert first != second


@pytest.mark.parametrize("seeds", [[bytes(33)], [b"a"] * 17], ids=["too_long", "too_many"])
def test_bad_seeds(seeds):
    error = _error(create_program_address, seeds, Pubkey.new_unique())
    assert error.kind is ProgramErrorKind.MAX_SEED_LENGTH_EXCEEDED


def test_create_account():
    payer = _payer()
    new = AccountInfo(key=Pubkey.new_unique(), is_signer=True)
    owner = Pubkey.new_unique()
    create_account(payer, new, 5000, 81, owner)
    assert new.owner == owner
    assert new.lamports == 5000
    assert new.data == bytearray(81)
    assert payer.lamports + new.lamports == 1_000_000


@pytest.mark.parametrize(
    "payer_lamports, new_fields, expected",
    [
        (10, {"is_signer": True}, {"code": 1}),
        (1_000_000, {"lamports": 1, "is_signer": True}, {"kind": ProgramErrorKind.CUSTOM, "code": 0}),
        (1_000_000, {}, {"kind": ProgramErrorKind.MISSING_REQUIRED_SIGNATURE}),
    ],
    ids=["insufficient_funds", "already_in_use", "unsigned_new_account"],
)
def test_create_account_rejected(payer_lamports, new_fields, expected):
    payer = _payer(lamports=payer_lamports)
    new = AccountInfo(key=Pubkey.new_unique(), **new_fields)
    error = _error(create_account, payer, new, 5000, 8, Pubkey.new_unique())
    assert {name: getattr(error, name) for name in expected} == expected


def test_create_account_insufficient_funds_changes_nothing():
    payer = _payer(lamports=10)
    new = AccountInfo(key=Pubkey.new_unique(), is_signer=True)
    _error(create_account, payer, new, 5000, 8, Pubkey.new_unique())
    assert payer.lamports == 10
    assert new.data == bytearray()


def test_create_account_signed_by_program_address():
    program_id = Pubkey.new_unique()
    creator = _payer()
    seeds = [b"vote_topic", bytes(creator.key)]
    pda, bump = find_program_address(seeds, program_id)
    topic = AccountInfo(key=pda)
    error = _error(create_account, creator, topic, 1000, 10, program_id)
    assert error.kind is ProgramErrorKind.MISSING_REQUIRED_SIGNATURE
    create_account(
        creator,
        topic,
        1000,
        10,
        program_id,
        signer_seeds=[[*seeds, bytes([bump])]],
        program_id=program_id,
    )
    assert topic.owner == program_id
    assert topic.lamports == 1000
    assert len(topic.data) == 10


def test_transfer_moves_lamports():
    source = _payer(lamports=3_000_000)
    destination = AccountInfo(key=Pubkey.new_unique(), lamports=1_000_000)
    transfer(source, destination, 1_000_000)
    assert destination.lamports == 2_000_000
    assert source.lamports == 2_000_000


@pytest.mark.parametrize(
    "source_fields, amount, attr, expected",
    [
        ({"lamports": 5, "is_signer": True}, 6, "code", 1),
        ({"lamports": 100}, 10, "kind", ProgramErrorKind.MISSING_REQUIRED_SIGNATURE),
        (
            {"lamports": 100, "data": b"\x01", "is_signer": True},
            10,
            "kind",
            ProgramErrorKind.INVALID_ARGUMENT,
        ),
    ],
    ids=["insufficient", "unsigned", "source_with_data"],
)
def test_transfer_rejected(source_fields, amount, attr, expected):
    source = AccountInfo(key=Pubkey.new_unique(), **source_fields)
    destination = AccountInfo(key=Pubkey.new_unique())
    error = _error(transfer, source, destination, amount)
    assert getattr(error, attr) == expected
    assert source.lamports == source_fields["lamports"]


def test_transfer_from_program_address():
    program_id = Pubkey.new_unique()
    pda, bump = find_program_address([b"transfer_vault"], program_id)
    vault = AccountInfo(key=pda, lamports=10_000_000)
    receiver = AccountInfo(key=Pubkey.new_unique(), lamports=1_000_000)
    transfer(
        vault,
        receiver,
        2_000_000,
        signer_seeds=[[b"transfer_vault", bytes([bump])]],
        program_id=program_id,
    )
    assert receiver.lamports == 1_000_000 + 2_000_000
    assert vault.lamports == 10_000_000 - 2_000_000


def test_signer_seeds_need_program_id():
    source = _payer()
    destination = AccountInfo(key=Pubkey.new_unique())
    with pytest.raises(ValueError):
        transfer(source, destination, 1, signer_seeds=[[b"transfer_vault"]])