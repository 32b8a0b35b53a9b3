# ledger/submit.py
from __future__ import annotations

from solders.hash import Hash
from solders.message import Message

from veilpay.api.logging_config import get_logger
from veilpay.errors import RpcError, SubmissionError
from veilpay.ledger.rpc import SolanaRpcClient
from veilpay.wallet.identity import SigningIdentity

logger = get_logger("ledger.submit")


class Submitter:
    """Sends an operation batch as one atomic transaction and waits for it."""

    async def submit(self, batch) -> str:
        raise NotImplementedError

    async def confirm(self, signature: str, level: str) -> None:
        raise NotImplementedError


class RpcSubmitter(Submitter):
    def __init__(self, rpc: SolanaRpcClient, identity: SigningIdentity):
        self.rpc = rpc
        self.identity = identity

    async def submit(self, batch) -> str:
        instructions = batch.instructions()
        try:
            blockhash = Hash.from_string(await self.rpc.get_latest_blockhash())
            message = Message.new_with_blockhash(instructions, self.identity.pubkey, blockhash)
            tx = await self.identity.sign_transaction(message, blockhash)
            signature = await self.rpc.send_transaction(bytes(tx))
        except RpcError as e:
            raise SubmissionError(e.message, logs=e.logs) from e
        logger.info("sent tx %s (%d instructions)", signature, len(instructions))
        return signature

    async def confirm(self, signature: str, level: str) -> None:
        try:
            await self.rpc.confirm_transaction(signature, level)
        except RpcError as e:
            raise SubmissionError(e.message, logs=e.logs) from e
