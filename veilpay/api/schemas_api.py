from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class _ApiModel(BaseModel):
    class Config:
        str_strip_whitespace = True
        extra = "ignore"


class Ok(_ApiModel):
    status: str = Field("ok", description="Fixed OK status for successful responses.")


class ErrorInfo(_ApiModel):
    kind: str = Field(..., description="Error kind, e.g. InvalidAmount or SubmissionError.")
    message: str = Field(..., description="Human-readable message.")
    logs: List[str] = Field(default_factory=list, description="Program log lines, when the cluster returned any.")


class TransferReq(_ApiModel):
    recipient: str = Field(..., description="Recipient wallet public key (base58).")
    amount: str = Field(..., description="Amount in SOL as a decimal string, e.g. \"1.5\".")


class TransferRes(Ok):
    tx_signature: str = Field(..., description="Transaction signature (base58).")


class OperationInfo(_ApiModel):
    kind: str = Field(..., description="init_balance, deposit or private_transfer.")
    accounts: List[str] = Field(..., description="Account keys in instruction order (base58).")


class DryRunRes(Ok):
    amount_lamports: int = Field(..., description="Amount after scaling and rounding.")
    nonce: int = Field(..., description="Sender sequence counter bound into the commitment.")
    sender_balance: str = Field(..., description="Sender balance PDA (base58).")
    receiver_balance: str = Field(..., description="Receiver balance PDA (base58).")
    sender_needs_init: bool
    receiver_needs_init: bool
    ciphertext_hex: str = Field(..., description="64-byte encrypted amount (hex).")
    commitment_hex: str = Field(..., description="32-byte commitment (hex).")
    tag_hex: str = Field(..., description="32-byte recipient tag (hex).")
    operations: List[OperationInfo]


class TransferStatus(_ApiModel):
    state: str = Field(..., description="Current orchestrator state.")
    is_loading: bool = Field(..., description="True while an attempt is outstanding.")
    last_signature: Optional[str] = Field(None, description="Signature of the last confirmed transfer.")
    last_error: Optional[ErrorInfo] = None
