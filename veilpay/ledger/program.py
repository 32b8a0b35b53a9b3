# ledger/program.py
"""
Instruction builders for the VeilPay Anchor program.

Each operation is a small typed record; to_instruction() lowers it to the
Anchor wire format: sha256("global:<name>")[:8] followed by the Borsh-encoded
arguments (u64 little-endian, fixed arrays as raw bytes).
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import List, Union

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from veilpay.crypto_core.amount_codec import CIPHERTEXT_LEN, u64_le
from veilpay.crypto_core.commitments import COMMITMENT_LEN, TAG_LEN


def instruction_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def _fixed(value: bytes, size: int, label: str) -> bytes:
    if len(value) != size:
        raise ValueError(f"{label} must be {size} bytes, got {len(value)}")
    return bytes(value)


@dataclass(frozen=True)
class InitBalanceOp:
    program_id: Pubkey
    account: Pubkey
    owner: Pubkey
    payer: Pubkey

    kind = "init_balance"

    def data(self) -> bytes:
        return instruction_discriminator("init_balance")

    def to_instruction(self) -> Instruction:
        return Instruction(
            self.program_id,
            self.data(),
            [
                AccountMeta(self.account, is_signer=False, is_writable=True),
                AccountMeta(self.owner, is_signer=False, is_writable=False),
                AccountMeta(self.payer, is_signer=True, is_writable=True),
                AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            ],
        )


@dataclass(frozen=True)
class DepositOp:
    program_id: Pubkey
    account: Pubkey
    vault: Pubkey
    amount: int
    ciphertext: bytes
    payer: Pubkey

    kind = "deposit"

    def data(self) -> bytes:
        return (
            instruction_discriminator("deposit")
            + u64_le(self.amount)
            + _fixed(self.ciphertext, CIPHERTEXT_LEN, "encrypted_amount")
        )

    def to_instruction(self) -> Instruction:
        return Instruction(
            self.program_id,
            self.data(),
            [
                AccountMeta(self.account, is_signer=False, is_writable=True),
                AccountMeta(self.vault, is_signer=False, is_writable=True),
                AccountMeta(self.payer, is_signer=True, is_writable=True),
                AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            ],
        )


@dataclass(frozen=True)
class PrivateTransferOp:
    program_id: Pubkey
    sender_account: Pubkey
    receiver_account: Pubkey
    sender: Pubkey
    ciphertext: bytes
    nonce: int
    commitment: bytes
    tag: bytes

    kind = "private_transfer"

    def data(self) -> bytes:
        return (
            instruction_discriminator("private_transfer")
            + _fixed(self.ciphertext, CIPHERTEXT_LEN, "encrypted_amount")
            + u64_le(self.nonce)
            + _fixed(self.commitment, COMMITMENT_LEN, "commitment")
            + _fixed(self.tag, TAG_LEN, "tag")
        )

    def to_instruction(self) -> Instruction:
        return Instruction(
            self.program_id,
            self.data(),
            [
                AccountMeta(self.sender_account, is_signer=False, is_writable=True),
                AccountMeta(self.receiver_account, is_signer=False, is_writable=True),
                AccountMeta(self.sender, is_signer=True, is_writable=False),
            ],
        )


Operation = Union[InitBalanceOp, DepositOp, PrivateTransferOp]


class VeilPayProgram:
    """Operation constructors bound to one deployed program id."""

    def __init__(self, program_id: Pubkey):
        self.program_id = program_id

    def build_init_balance_op(self, account: Pubkey, owner: Pubkey, payer: Pubkey) -> InitBalanceOp:
        return InitBalanceOp(self.program_id, account, owner, payer)

    def build_deposit_op(
        self, account: Pubkey, vault: Pubkey, amount: int, ciphertext: bytes, payer: Pubkey
    ) -> DepositOp:
        return DepositOp(self.program_id, account, vault, amount, bytes(ciphertext), payer)

    def build_private_transfer_op(
        self,
        sender_account: Pubkey,
        receiver_account: Pubkey,
        sender: Pubkey,
        ciphertext: bytes,
        nonce: int,
        commitment: bytes,
        tag: bytes,
    ) -> PrivateTransferOp:
        return PrivateTransferOp(
            self.program_id,
            sender_account,
            receiver_account,
            sender,
            bytes(ciphertext),
            nonce,
            bytes(commitment),
            bytes(tag),
        )


def to_instructions(ops: List[Operation]) -> List[Instruction]:
    return [op.to_instruction() for op in ops]
