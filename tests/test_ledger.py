import asyncio
import hashlib

import pytest
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from conftest import FakeLedger, PROGRAM_ID
from veilpay.errors import AccountNotFound
from veilpay.ledger.accounts import (
    AccountStateReader,
    BalanceAccountState,
    account_discriminator,
    balance_address,
    decode_balance_account,
    encode_balance_account,
    vault_address,
)
from veilpay.ledger.program import instruction_discriminator

OWNER = Pubkey(bytes([1] * 32))
OTHER = Pubkey(bytes([2] * 32))


def test_balance_address_is_deterministic_per_owner():
    a = balance_address(OWNER, PROGRAM_ID)
    assert a == balance_address(OWNER, PROGRAM_ID)
    assert a != balance_address(OTHER, PROGRAM_ID)
    assert not a.is_on_curve()


def test_balance_address_matches_find_program_address():
    expected, _bump = Pubkey.find_program_address([b"balance", bytes(OWNER)], PROGRAM_ID)
    assert balance_address(OWNER, PROGRAM_ID) == expected
    vault, _bump = Pubkey.find_program_address([b"vault"], PROGRAM_ID)
    assert vault_address(PROGRAM_ID) == vault


def test_discriminators_follow_anchor_convention():
    assert account_discriminator("ConfidentialBalance") == hashlib.sha256(
        b"account:ConfidentialBalance"
    ).digest()[:8]
    assert instruction_discriminator("private_transfer") == hashlib.sha256(
        b"global:private_transfer"
    ).digest()[:8]


def test_balance_account_layout():
    state = BalanceAccountState(OWNER, bytes(range(64)), 7, 254)
    data = encode_balance_account(state)
    assert len(data) == 8 + 32 + 64 + 8 + 1
    assert data[104:112] == (7).to_bytes(8, "little")
    assert decode_balance_account(data) == state
    # trailing padding allocated by the program is ignored
    assert decode_balance_account(data + bytes(16)) == state


def test_decode_rejects_foreign_accounts():
    data = encode_balance_account(BalanceAccountState(OWNER, bytes(64), 1, 255))
    with pytest.raises(ValueError):
        decode_balance_account(b"\x00" * 8 + data[8:])
    with pytest.raises(ValueError):
        decode_balance_account(data[:50])


def test_reader_exists_and_counter():
    ledger = FakeLedger()
    reader = AccountStateReader(ledger)
    addr = balance_address(OWNER, PROGRAM_ID)

    async def scenario():
        assert await reader.exists(addr) is False
        with pytest.raises(AccountNotFound):
            await reader.get_sequence_counter(addr)
        ledger.put_balance(addr, OWNER, nonce=12)
        assert await reader.exists(addr) is True
        before = len(ledger.lookups)
        assert await reader.get_sequence_counter(addr) == 12
        assert len(ledger.lookups) == before + 1

    asyncio.run(scenario())


def test_program_operations_wire_format(program, recipient, sender_identity):
    sender = sender_identity.pubkey
    s_acc = balance_address(sender, PROGRAM_ID)
    r_acc = balance_address(recipient, PROGRAM_ID)
    vault = vault_address(PROGRAM_ID)
    ct = bytes(range(64))

    init = program.build_init_balance_op(r_acc, recipient, sender).to_instruction()
    assert init.program_id == PROGRAM_ID
    assert bytes(init.data) == instruction_discriminator("init_balance")
    assert [m.pubkey for m in init.accounts] == [r_acc, recipient, sender, SYSTEM_PROGRAM_ID]
    assert [(m.is_signer, m.is_writable) for m in init.accounts] == [
        (False, True), (False, False), (True, True), (False, False),
    ]

    dep = program.build_deposit_op(s_acc, vault, 1_500_000_000, ct, sender).to_instruction()
    data = bytes(dep.data)
    assert len(data) == 8 + 8 + 64
    assert data[8:16] == bytes.fromhex("002f685900000000")
    assert data[16:] == ct
    assert [m.pubkey for m in dep.accounts] == [s_acc, vault, sender, SYSTEM_PROGRAM_ID]

    xfer = program.build_private_transfer_op(
        s_acc, r_acc, sender, ct, 7, b"\x0c" * 32, b"\x0d" * 32
    ).to_instruction()
    data = bytes(xfer.data)
    assert len(data) == 8 + 64 + 8 + 32 + 32
    assert data[:8] == instruction_discriminator("private_transfer")
    assert data[8:72] == ct
    assert data[72:80] == (7).to_bytes(8, "little")
    assert data[80:112] == b"\x0c" * 32
    assert data[112:] == b"\x0d" * 32
    assert [(m.pubkey, m.is_signer, m.is_writable) for m in xfer.accounts] == [
        (s_acc, False, True), (r_acc, False, True), (sender, True, False),
    ]


def test_program_operations_check_sizes(program):
    with pytest.raises(ValueError):
        program.build_deposit_op(OWNER, OTHER, 1, b"\x00" * 10, OWNER).to_instruction()
    with pytest.raises(ValueError):
        program.build_private_transfer_op(
            OWNER, OTHER, OWNER, bytes(64), 0, b"\x00" * 31, b"\x00" * 32
        ).data()
