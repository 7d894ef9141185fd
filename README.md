# solcourse

This package models small on-chain programs in plain Python. Each program
exposes `process_instruction(program_id, accounts, instruction_data)`. It runs
in-process on in-memory `AccountInfo` objects. Instruction data and account
state use Borsh-compatible byte layouts.

## Modules

- `solcourse.runtime`: `Pubkey` (32 bytes; `str()` gives base58, with `new_unique()` and `default()`), `AccountInfo`, `ProgramError` and `ProgramErrorKind`, `next_account` and `msg`. `msg` logs at INFO level to the `solcourse.program` logger.
- `solcourse.borsh`: `BorshReader` and `BorshWriter` for the Borsh wire format, `BorshError`, and `store`, which writes an encoded value at the start of an account's data.
- `solcourse.system`:
  - `Rent` with `minimum_balance` and `is_exempt`.
  - `Clock`, `current_clock()` and the `use_clock()` context manager.
  - Program-derived addresses through `create_program_address` and `find_program_address`.
  - System-program operations `create_account` and `transfer`. Both take optional PDA `signer_seeds`.
- `solcourse.basics`:
  - `Lamports`, with `from_sol`, `+`, and `-`, which raises `InsufficientFundsError`.
  - `Account`.
  - `Transaction`, with `new_transfer` and `sign`.
- `solcourse.hello`: a program that only logs a greeting, its program id and the number of accounts.
- `solcourse.counter`: a counter with `CounterInstruction.INITIALIZE`, `INCREMENT`, `DECREMENT` and `RESET`. State is `Counter`.
- `solcourse.profile`: user profiles with `CreateProfile`, `UpdateProfile` and `CloseProfile`. State is `UserProfile`.
- `solcourse.vote`: two-option voting (`CreateTopic`, `Vote`). There is one PDA for each topic and one for each voter. State is `VoteTopic` and `UserVote`.
- `solcourse.transfer`: lamport transfers (`TransferWithRecord`, `TransferFromPda`) that each write a `TransferRecord`. The record's `timestamp` is the slot of the current clock.

## Examples

A counter:

```python
from solcourse.runtime import AccountInfo, Pubkey
from solcourse.counter import Counter, CounterInstruction, process_instruction

program_id = Pubkey.new_unique()
counter = AccountInfo(key=Pubkey.new_unique(), owner=program_id,
                      lamports=1_000_000, data=bytearray(9))

process_instruction(program_id, [counter], CounterInstruction.INITIALIZE.pack())
process_instruction(program_id, [counter], CounterInstruction.INCREMENT.pack())

assert Counter.unpack(counter.data).count == 1
```

A voting topic at a program-derived address:

```python
from solcourse.runtime import SYSTEM_PROGRAM_ID, AccountInfo, Pubkey
from solcourse.system import find_program_address
from solcourse.vote import CreateTopic, VoteTopic, pack_instruction, process_instruction

program_id = Pubkey.new_unique()
creator = AccountInfo(key=Pubkey.new_unique(), lamports=10_000_000, is_signer=True)
topic_key, bump = find_program_address([b"vote_topic", creator.key], program_id)
topic = AccountInfo(key=topic_key)
system_program = AccountInfo(key=SYSTEM_PROGRAM_ID)

process_instruction(program_id, [creator, topic, system_program],
                    pack_instruction(CreateTopic("Do you like it?", bump)))

assert VoteTopic.unpack(topic.data).description == "Do you like it?"
```

A program that fails raises `ProgramError`, and the error's `kind` tells what
went wrong. A program's own errors (`VoteError`, `TransferError`) become
custom program errors through `to_program_error()`. The numeric code is in the
error's `code`.

## What it does not do

- It has no ledger, cluster or network.
- Nothing is persisted.
- A "transaction" is not executed atomically. You call a program's
  `process_instruction` directly, and it changes the `AccountInfo` objects you
  pass in. If it raises, changes it made before the error stay in place.
- Signatures are not cryptographic. An account counts as signed when its
  `is_signer` flag is set, or when it is a PDA whose seeds are given.

## Tests

```
pip install -e ".[test]"
pytest
```