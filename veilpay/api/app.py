# veilpay/api/app.py
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from solders.pubkey import Pubkey

from veilpay.api.health_checks import health_report
from veilpay.api.logging_config import get_logger, setup_logging
from veilpay.api.schemas_api import (
    DryRunRes,
    ErrorInfo,
    OperationInfo,
    TransferReq,
    TransferRes,
    TransferStatus,
)
from veilpay.config import PROGRAM_ID, SOLANA_RPC_URL, VEILPAY_KEYFILE
from veilpay.errors import VeilPayError
from veilpay.ledger.rpc import SolanaRpcClient
from veilpay.transfer.orchestrator import TransferOrchestrator, build_orchestrator
from veilpay.wallet.identity import KeyfileIdentity

logger = get_logger("api")

# =========================
# Error mapping
# =========================

STATUS_BY_KIND = {
    "InvalidAddress": 400,
    "InvalidAmount": 400,
    "CapabilityUnsupported": 400,
    "TransferInProgress": 409,
    "SubmissionError": 502,
}


def _http_error(e: VeilPayError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND.get(e.kind, 500), detail=e.to_dict())


# =========================
# Lifespan / dependencies
# =========================

@asynccontextmanager
async def _lifespan(app: FastAPI):
    """
    Build the RPC client and the single orchestrator before serving.

    A missing or unreadable keyfile does not stop the server: /health still
    answers and transfer routes return 503 with the reason.
    """
    setup_logging()
    rpc = SolanaRpcClient(SOLANA_RPC_URL)
    app.state.rpc = rpc
    app.state.orchestrator = None
    app.state.orchestrator_error = None
    try:
        identity = KeyfileIdentity.from_file(VEILPAY_KEYFILE)
    except (OSError, ValueError, TypeError) as e:
        app.state.orchestrator_error = f"Cannot load keyfile {VEILPAY_KEYFILE}: {e}"
        logger.error(app.state.orchestrator_error)
    else:
        logger.info("serving transfers for %s (program %s)", identity.pubkey, PROGRAM_ID)
        app.state.orchestrator = build_orchestrator(identity, rpc, Pubkey.from_string(PROGRAM_ID))
    yield
    await rpc.close()


app = FastAPI(title="VeilPay API", version="0.1.0", lifespan=_lifespan)


def get_rpc(request: Request) -> SolanaRpcClient:
    return request.app.state.rpc


def get_orchestrator(request: Request) -> TransferOrchestrator:
    orch = getattr(request.app.state, "orchestrator", None)
    if orch is None:
        reason = getattr(request.app.state, "orchestrator_error", None) or "Transfer service not started"
        raise HTTPException(status_code=503, detail={"kind": "Unavailable", "message": reason, "logs": []})
    return orch


# =========================
# Routes
# =========================

@app.get("/health")
async def health(rpc: SolanaRpcClient = Depends(get_rpc)):
    return await health_report(rpc, PROGRAM_ID)


@app.post("/transfer", response_model=TransferRes)
async def transfer(req: TransferReq, orch: TransferOrchestrator = Depends(get_orchestrator)):
    try:
        signature = await orch.attempt(req.recipient, req.amount)
    except VeilPayError as e:
        raise _http_error(e)
    return TransferRes(tx_signature=signature)


@app.post("/transfer/dry-run", response_model=DryRunRes)
async def transfer_dry_run(req: TransferReq, orch: TransferOrchestrator = Depends(get_orchestrator)):
    try:
        plan = await orch.dry_run(req.recipient, req.amount)
    except VeilPayError as e:
        raise _http_error(e)

    operations = [
        OperationInfo(kind=op.kind, accounts=[str(m.pubkey) for m in op.to_instruction().accounts])
        for op in plan.batch
    ]
    return DryRunRes(
        amount_lamports=plan.amount,
        nonce=plan.nonce,
        sender_balance=str(plan.sender_account),
        receiver_balance=str(plan.receiver_account),
        sender_needs_init=plan.sender_needs_init,
        receiver_needs_init=plan.receiver_needs_init,
        ciphertext_hex=plan.ciphertext.hex(),
        commitment_hex=plan.commitment.hex(),
        tag_hex=plan.tag.hex(),
        operations=operations,
    )


@app.get("/transfer/status", response_model=TransferStatus)
def transfer_status(orch: TransferOrchestrator = Depends(get_orchestrator)):
    err = orch.last_error
    return TransferStatus(
        state=orch.state.value,
        is_loading=orch.is_loading,
        last_signature=orch.last_signature,
        last_error=ErrorInfo(kind=err.kind, message=err.message, logs=err.logs) if err else None,
    )
