import asyncio
import hashlib

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from veilpay.config import DEFAULT_PROGRAM_ID
from veilpay.crypto_core.amount_codec import AmountCodec
from veilpay.crypto_core.commitments import CommitmentScheme
from veilpay.errors import SubmissionError
from veilpay.ledger.accounts import (
    AccountInfo,
    AccountStateReader,
    BalanceAccountState,
    LedgerClient,
    decode_balance_account,
    encode_balance_account,
)
from veilpay.ledger.program import InitBalanceOp, PrivateTransferOp, VeilPayProgram
from veilpay.ledger.submit import Submitter
from veilpay.transfer.orchestrator import TransferOrchestrator
from veilpay.wallet.identity import KeyfileIdentity, SigningIdentity

PROGRAM_ID = Pubkey.from_string(DEFAULT_PROGRAM_ID)


class FakeLedger(LedgerClient):
    """In-memory accounts keyed by address; records every lookup."""

    def __init__(self):
        self.accounts = {}
        self.lookups = []

    def put_balance(self, address: Pubkey, owner: Pubkey, nonce: int = 0) -> None:
        data = encode_balance_account(BalanceAccountState(owner, bytes(64), nonce, 255))
        self.accounts[address] = AccountInfo(lamports=1_000_000, owner=PROGRAM_ID, data=data)

    def nonce_of(self, address: Pubkey) -> int:
        return decode_balance_account(self.accounts[address].data).nonce

    async def get_account_info(self, address):
        self.lookups.append(address)
        return self.accounts.get(address)


class FakeSubmitter(Submitter):
    """
    Accepts batches and, on confirm, applies them to the fake ledger the way
    the program would: init creates a nonce-0 account, transfer bumps the
    sender's nonce.
    """

    def __init__(self, ledger: FakeLedger):
        self.ledger = ledger
        self.batches = []
        self.confirmed = []
        self.submit_error = None
        self.confirm_error = None
        self.confirm_gate = None

    async def submit(self, batch):
        if self.submit_error:
            raise self.submit_error
        self.batches.append(batch)
        return f"sig{len(self.batches)}"

    async def confirm(self, signature, level):
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        if self.confirm_error:
            raise self.confirm_error
        batch = self.batches[int(signature[3:]) - 1]
        for op in batch:
            if isinstance(op, InitBalanceOp):
                self.ledger.put_balance(op.account, op.owner, 0)
            elif isinstance(op, PrivateTransferOp):
                nonce = self.ledger.nonce_of(op.sender_account)
                self.ledger.put_balance(op.sender_account, op.sender, nonce + 1)
        self.confirmed.append((signature, level))


class GatedIdentity(SigningIdentity):
    """Signs only after the test opens the gate (a wallet waiting on user approval)."""

    def __init__(self, inner: KeyfileIdentity):
        super().__init__(inner.pubkey)
        self.inner = inner
        self.gate = asyncio.Event()

    @property
    def can_sign_messages(self) -> bool:
        return True

    async def sign_message(self, message):
        await self.gate.wait()
        return await self.inner.sign_message(message)


class ReversedCodec(AmountCodec):
    name = "test-reversed"

    def encode(self, amount):
        return hashlib.sha512(amount.to_bytes(8, "little")).digest()[::-1]


class ConstantScheme(CommitmentScheme):
    name = "test-constant"

    def commitment(self, ciphertext, nonce, recipient):
        return bytes([nonce % 256]) * 32

    def tag(self, recipient, secret):
        return b"\x01" * 32


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def program_id():
    return PROGRAM_ID


@pytest.fixture
def program():
    return VeilPayProgram(PROGRAM_ID)


@pytest.fixture
def sender_identity():
    return KeyfileIdentity(bytes(Keypair.from_seed(bytes([7] * 32))))


@pytest.fixture
def recipient():
    return Keypair.from_seed(bytes([9] * 32)).pubkey()


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def submitter(ledger):
    return FakeSubmitter(ledger)


@pytest.fixture
def make_orchestrator(ledger, submitter, program):
    def _make(identity, **kwargs):
        return TransferOrchestrator(
            reader=AccountStateReader(ledger),
            identity=identity,
            submitter=submitter,
            program=program,
            **kwargs,
        )
    return _make


@pytest.fixture
def orchestrator(make_orchestrator, sender_identity):
    return make_orchestrator(sender_identity)


@pytest.fixture
def submission_error():
    return SubmissionError(
        "Transaction simulation failed: Error processing Instruction 3",
        logs=["Program log: AnchorError: InvalidNonce", "Program failed"],
    )
