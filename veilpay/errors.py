# veilpay/errors.py
from __future__ import annotations

from typing import List, Optional


class VeilPayError(RuntimeError):
    """Base class for every failure surfaced by a transfer attempt."""

    kind = "UnknownError"

    def __init__(self, message: str, logs: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.logs: List[str] = list(logs or [])

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "logs": self.logs}


class InvalidAddress(VeilPayError):
    """Recipient is not a valid 32-byte base58 public key."""

    kind = "InvalidAddress"


class InvalidAmount(VeilPayError):
    """Amount is not a finite positive number of lamports that fits in a u64."""

    kind = "InvalidAmount"


class CapabilityUnsupported(VeilPayError):
    """The connected identity cannot sign arbitrary messages."""

    kind = "CapabilityUnsupported"


class AccountNotFound(VeilPayError):
    """No storage allocated at the address. Internal: turned into a bootstrap decision."""

    kind = "AccountNotFound"


class SubmissionError(VeilPayError):
    """Network or program rejection while sending or confirming the batch."""

    kind = "SubmissionError"


class UnknownError(VeilPayError):
    kind = "UnknownError"


class TransferInProgress(VeilPayError):
    """Another attempt is still outstanding on this orchestrator."""

    kind = "TransferInProgress"


class RpcError(VeilPayError):
    """Transport failure or JSON-RPC error object returned by the cluster."""

    kind = "RpcError"

    def __init__(self, message: str, code: Optional[int] = None, logs: Optional[List[str]] = None):
        super().__init__(message, logs)
        self.code = code
