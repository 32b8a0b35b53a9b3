# transfer/batch.py
from __future__ import annotations

from typing import Iterator, List

from solders.instruction import Instruction

from veilpay.ledger.program import Operation, to_instructions


class OperationBatch:
    """
    Ordered operations that go out in a single transaction.

    Order is fixed: sender init, receiver init, deposit, transfer. The batch
    is handed to the submitter whole; it is never split.
    """

    def __init__(self, operations: List[Operation]):
        self._operations = tuple(operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __getitem__(self, index: int) -> Operation:
        return self._operations[index]

    @property
    def kinds(self) -> List[str]:
        return [op.kind for op in self._operations]

    def instructions(self) -> List[Instruction]:
        return to_instructions(list(self._operations))


class BatchBuilder:
    def __init__(self):
        self._init_sender: List[Operation] = []
        self._init_receiver: List[Operation] = []
        self._deposit: List[Operation] = []
        self._transfer: List[Operation] = []

    def init_sender(self, op: Operation) -> "BatchBuilder":
        self._init_sender = [op]
        return self

    def init_receiver(self, op: Operation) -> "BatchBuilder":
        self._init_receiver = [op]
        return self

    def deposit(self, op: Operation) -> "BatchBuilder":
        self._deposit = [op]
        return self

    def transfer(self, op: Operation) -> "BatchBuilder":
        self._transfer = [op]
        return self

    def build(self) -> OperationBatch:
        if not self._deposit or not self._transfer:
            raise ValueError("a batch needs both a deposit and a transfer")
        return OperationBatch(self._init_sender + self._init_receiver + self._deposit + self._transfer)


def compose_batch(
    program,
    *,
    sender,
    recipient,
    sender_account,
    receiver_account,
    vault,
    sender_needs_init: bool,
    receiver_needs_init: bool,
    amount: int,
    ciphertext: bytes,
    nonce: int,
    commitment: bytes,
    tag: bytes,
) -> OperationBatch:
    """Fund-as-you-go batch: deposit exactly `amount`, then move it to the recipient."""
    builder = BatchBuilder()
    if sender_needs_init:
        builder.init_sender(program.build_init_balance_op(sender_account, sender, sender))
    if receiver_needs_init:
        builder.init_receiver(program.build_init_balance_op(receiver_account, recipient, sender))
    builder.deposit(program.build_deposit_op(sender_account, vault, amount, ciphertext, sender))
    builder.transfer(
        program.build_private_transfer_op(
            sender_account, receiver_account, sender, ciphertext, nonce, commitment, tag
        )
    )
    return builder.build()
