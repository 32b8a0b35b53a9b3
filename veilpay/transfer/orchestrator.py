# transfer/orchestrator.py
"""
Private transfer flow.

    Idle -> ValidatingInput -> ResolvingAccounts -> DerivingSecrets
         -> BuildingBatch -> Submitting -> Succeeded | Failed

Every step depends on the previous one, so the flow is strictly sequential.
It suspends twice: while the wallet signs the key-derivation challenge and
while the batch is sent and confirmed. Nothing touches the ledger before
Submitting, so an attempt abandoned earlier leaves no trace. Once the batch
has been dispatched it is shielded from cancellation and runs to completion.
"""
from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from solders.pubkey import Pubkey

from veilpay.api.logging_config import get_logger
from veilpay.config import CONFIRM_COMMITMENT, LAMPORTS_PER_SOL
from veilpay.crypto_core.amount_codec import DEFAULT_CODEC, AmountCodec
from veilpay.crypto_core.commitments import DEFAULT_SCHEME, CommitmentScheme
from veilpay.crypto_core.key_derivation import challenge_message, derive_secret
from veilpay.errors import (
    AccountNotFound,
    CapabilityUnsupported,
    RpcError,
    SubmissionError,
    TransferInProgress,
    UnknownError,
    VeilPayError,
)
from veilpay.ledger.accounts import AccountStateReader, balance_address, vault_address
from veilpay.ledger.program import VeilPayProgram
from veilpay.ledger.submit import RpcSubmitter, Submitter
from veilpay.transfer.batch import OperationBatch, compose_batch
from veilpay.transfer.validation import parse_amount, parse_recipient
from veilpay.wallet.identity import SigningIdentity

logger = get_logger("transfer")


class TransferState(str, enum.Enum):
    IDLE = "Idle"
    VALIDATING_INPUT = "ValidatingInput"
    RESOLVING_ACCOUNTS = "ResolvingAccounts"
    DERIVING_SECRETS = "DerivingSecrets"
    BUILDING_BATCH = "BuildingBatch"
    SUBMITTING = "Submitting"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass
class TransferPlan:
    """Per-attempt values. Built once, submitted once, then dropped."""

    sender: Pubkey
    recipient: Pubkey
    amount: int
    sender_account: Optional[Pubkey] = None
    receiver_account: Optional[Pubkey] = None
    sender_needs_init: bool = False
    receiver_needs_init: bool = False
    nonce: int = 0
    secret: bytes = field(default=b"", repr=False)
    tag: bytes = b""
    ciphertext: bytes = b""
    commitment: bytes = b""
    batch: Optional[OperationBatch] = None


@dataclass(frozen=True)
class TransferFailure:
    kind: str
    message: str
    logs: List[str] = field(default_factory=list)


def _retrieve_outcome(task: "asyncio.Future[str]") -> None:
    # The caller may have been cancelled while the shielded dispatch ran on;
    # its failure is already recorded in last_error.
    if not task.cancelled() and task.exception() is not None:
        logger.debug("dispatch ended with %r", task.exception())


class TransferOrchestrator:
    """
    Drives one private transfer at a time for a single sender.

    Collaborators are passed in explicitly: the account reader and submitter
    talk to the cluster, the identity is the connected wallet.
    """

    def __init__(
        self,
        reader: AccountStateReader,
        identity: SigningIdentity,
        submitter: Submitter,
        program: VeilPayProgram,
        codec: AmountCodec = DEFAULT_CODEC,
        scheme: CommitmentScheme = DEFAULT_SCHEME,
        unit_factor: int = LAMPORTS_PER_SOL,
        confirm_level: str = CONFIRM_COMMITMENT,
        on_success: Optional[Callable[[str], None]] = None,
        on_dismiss: Optional[Callable[[], None]] = None,
    ):
        self.reader = reader
        self.identity = identity
        self.submitter = submitter
        self.program = program
        self.codec = codec
        self.scheme = scheme
        self.unit_factor = unit_factor
        self.confirm_level = confirm_level
        self.on_success = on_success
        self.on_dismiss = on_dismiss

        self.state = TransferState.IDLE
        self.last_error: Optional[TransferFailure] = None
        self.last_signature: Optional[str] = None
        self._busy = False

    @property
    def is_loading(self) -> bool:
        return self._busy

    # ===== Public entry points =====
    async def attempt(self, recipient: str, amount: str) -> str:
        """Run the whole flow; returns the transaction signature or raises a VeilPayError."""
        self._acquire()
        try:
            plan = await self._prepare(recipient, amount)
        except asyncio.CancelledError:
            logger.info("transfer abandoned before submission")
            self._reset()
            raise
        except Exception as e:
            self._raise_failure(e)

        dispatch = asyncio.ensure_future(self._dispatch(plan))
        dispatch.add_done_callback(_retrieve_outcome)
        return await asyncio.shield(dispatch)

    async def dry_run(self, recipient: str, amount: str) -> TransferPlan:
        """Build the plan without sending anything; the orchestrator ends back in Idle."""
        self._acquire()
        try:
            return await self._prepare(recipient, amount)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._raise_failure(e)
        finally:
            if self.state is not TransferState.FAILED:
                self._reset()

    # ===== Steps =====
    async def _prepare(self, recipient: str, amount: str) -> TransferPlan:
        self._enter(TransferState.VALIDATING_INPUT)
        recipient_pub = parse_recipient(recipient)
        lamports = parse_amount(amount, self.unit_factor)
        if not self.identity.can_sign_messages:
            raise CapabilityUnsupported("Wallet does not support message signing!")
        plan = TransferPlan(sender=self.identity.pubkey, recipient=recipient_pub, amount=lamports)

        self._enter(TransferState.RESOLVING_ACCOUNTS)
        await self._resolve_accounts(plan)

        self._enter(TransferState.DERIVING_SECRETS)
        await self._derive_secrets(plan)

        self._enter(TransferState.BUILDING_BATCH)
        self._build_batch(plan)
        return plan

    async def _resolve_accounts(self, plan: TransferPlan) -> None:
        program_id = self.program.program_id
        plan.sender_account = balance_address(plan.sender, program_id)
        plan.receiver_account = balance_address(plan.recipient, program_id)

        if await self.reader.exists(plan.sender_account):
            try:
                plan.nonce = await self.reader.get_sequence_counter(plan.sender_account)
            except AccountNotFound:
                plan.sender_needs_init, plan.nonce = True, 0
        else:
            plan.sender_needs_init, plan.nonce = True, 0
        if plan.sender_needs_init:
            logger.info("sender balance %s missing, will initialize", plan.sender_account)

        plan.receiver_needs_init = not await self.reader.exists(plan.receiver_account)
        if plan.receiver_needs_init:
            logger.info("receiver balance %s missing, will initialize", plan.receiver_account)

    async def _derive_secrets(self, plan: TransferPlan) -> None:
        signature = await self.identity.sign_message(challenge_message())
        plan.secret = derive_secret(signature)
        plan.tag = self.scheme.tag(plan.recipient, plan.secret)

    def _build_batch(self, plan: TransferPlan) -> None:
        # The same ciphertext funds the sender's balance and is then moved out
        plan.ciphertext = self.codec.encode(plan.amount)
        plan.commitment = self.scheme.commitment(plan.ciphertext, plan.nonce, plan.recipient)
        plan.batch = compose_batch(
            self.program,
            sender=plan.sender,
            recipient=plan.recipient,
            sender_account=plan.sender_account,
            receiver_account=plan.receiver_account,
            vault=vault_address(self.program.program_id),
            sender_needs_init=plan.sender_needs_init,
            receiver_needs_init=plan.receiver_needs_init,
            amount=plan.amount,
            ciphertext=plan.ciphertext,
            nonce=plan.nonce,
            commitment=plan.commitment,
            tag=plan.tag,
        )
        logger.debug("batch %s nonce=%d", plan.batch.kinds, plan.nonce)

    async def _dispatch(self, plan: TransferPlan) -> str:
        try:
            self._enter(TransferState.SUBMITTING)
            signature = await self.submitter.submit(plan.batch)
            await self.submitter.confirm(signature, self.confirm_level)
        except Exception as e:
            self._raise_failure(e, submitting=True)

        self.last_signature = signature
        self._enter(TransferState.SUCCEEDED)
        self._busy = False
        logger.info("private transfer of %d lamports confirmed: %s", plan.amount, signature)
        if self.on_success:
            self.on_success(signature)
        if self.on_dismiss:
            self.on_dismiss()
        return signature

    # ===== State bookkeeping =====
    def _acquire(self) -> None:
        if self._busy:
            raise TransferInProgress("A transfer is already in progress")
        self._busy = True
        self.last_error = None

    def _enter(self, state: TransferState) -> None:
        logger.debug("%s -> %s", self.state.value, state.value)
        self.state = state

    def _reset(self) -> None:
        self.state = TransferState.IDLE
        self._busy = False

    def _raise_failure(self, exc: Exception, submitting: bool = False) -> None:
        failure = self._fail(exc, submitting)
        if failure is exc:
            raise failure
        raise failure from exc

    def _fail(self, exc: Exception, submitting: bool = False) -> VeilPayError:
        if submitting and isinstance(exc, RpcError):
            exc = SubmissionError(exc.message, logs=exc.logs)
        elif isinstance(exc, RpcError) or not isinstance(exc, VeilPayError):
            exc = UnknownError(str(exc) or exc.__class__.__name__)
        self.last_error = TransferFailure(exc.kind, exc.message, list(exc.logs))
        self.state = TransferState.FAILED
        self._busy = False
        logger.error("transfer failed [%s]: %s", exc.kind, exc.message)
        for line in exc.logs:
            logger.error("  program log: %s", line)
        return exc


def build_orchestrator(identity: SigningIdentity, rpc, program_id: Pubkey, **kwargs) -> TransferOrchestrator:
    """Wire the production collaborators around one identity and RPC connection."""
    return TransferOrchestrator(
        reader=AccountStateReader(rpc),
        identity=identity,
        submitter=RpcSubmitter(rpc, identity),
        program=VeilPayProgram(program_id),
        **kwargs,
    )
