# ledger/rpc.py
"""
Minimal async Solana JSON-RPC client.

Only the calls the transfer flow needs: account reads, latest blockhash,
sendTransaction and signature status polling.
"""
from __future__ import annotations

import asyncio
import base64
import itertools
from typing import Any, Dict, List, Optional

import httpx
from solders.pubkey import Pubkey

from veilpay.api.logging_config import get_logger
from veilpay.config import CONFIRM_POLL_INTERVAL_SEC, RPC_TIMEOUT_SEC, SOLANA_RPC_URL
from veilpay.errors import RpcError, SubmissionError
from veilpay.ledger.accounts import AccountInfo, LedgerClient

logger = get_logger("ledger.rpc")

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


def commitment_rank(level: str) -> int:
    try:
        return COMMITMENT_LEVELS.index(level)
    except ValueError:
        raise ValueError(f"Unknown commitment level: {level!r}") from None


def _logs_from_error(error: Dict[str, Any]) -> List[str]:
    data = error.get("data")
    if isinstance(data, dict):
        return list(data.get("logs") or [])
    return []


class SolanaRpcClient(LedgerClient):
    def __init__(
        self,
        rpc_url: str = SOLANA_RPC_URL,
        http: Optional[httpx.AsyncClient] = None,
        poll_interval: float = CONFIRM_POLL_INTERVAL_SEC,
    ):
        self.rpc_url = rpc_url
        self.poll_interval = poll_interval
        self._http = http or httpx.AsyncClient(timeout=RPC_TIMEOUT_SEC)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def call(self, method: str, params: Optional[list] = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        try:
            response = await self._http.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RpcError(f"{method} failed: {e}") from e

        error = body.get("error")
        if error:
            raise RpcError(
                f"{method}: {error.get('message', 'unknown RPC error')}",
                code=error.get("code"),
                logs=_logs_from_error(error),
            )
        return body.get("result")

    # ===== Reads =====
    async def get_account_info(self, address: Pubkey, commitment: str = "processed") -> Optional[AccountInfo]:
        result = await self.call(
            "getAccountInfo", [str(address), {"encoding": "base64", "commitment": commitment}]
        )
        value = (result or {}).get("value")
        if not value:
            return None
        raw, _encoding = value["data"]
        return AccountInfo(
            lamports=int(value.get("lamports", 0)),
            owner=Pubkey.from_string(value["owner"]),
            data=base64.b64decode(raw),
            executable=bool(value.get("executable", False)),
        )

    async def get_latest_blockhash(self, commitment: str = "processed") -> str:
        result = await self.call("getLatestBlockhash", [{"commitment": commitment}])
        return result["value"]["blockhash"]

    async def get_health(self) -> str:
        return await self.call("getHealth")

    # ===== Writes =====
    async def send_transaction(self, wire_tx: bytes, preflight_commitment: str = "processed") -> str:
        """Send a signed, serialized transaction; returns its base58 signature."""
        try:
            return await self.call(
                "sendTransaction",
                [
                    base64.b64encode(wire_tx).decode("ascii"),
                    {"encoding": "base64", "preflightCommitment": preflight_commitment},
                ],
            )
        except RpcError as e:
            raise SubmissionError(e.message, logs=e.logs) from e

    async def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        result = await self.call("getSignatureStatuses", [[signature]])
        statuses = (result or {}).get("value") or [None]
        return statuses[0]

    async def confirm_transaction(self, signature: str, commitment: str = "processed") -> None:
        """
        Poll until `signature` reaches `commitment` or fails.

        No deadline: the caller decides how long it is willing to wait.
        """
        wanted = commitment_rank(commitment)
        while True:
            status = await self.get_signature_status(signature)
            if status is not None:
                if status.get("err") is not None:
                    raise SubmissionError(f"Transaction {signature} failed: {status['err']}")
                reached = status.get("confirmationStatus")
                if reached and commitment_rank(reached) >= wanted:
                    logger.info("tx %s reached %s", signature, reached)
                    return
            await asyncio.sleep(self.poll_interval)
