# veilpay/config.py
from __future__ import annotations

import json
import os
import pathlib
from typing import Optional

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]

# ===== Protocol constants (must match the on-chain program) =====
DEFAULT_PROGRAM_ID = "6pYu5mRNehST4KkwUzcEKt47Km9qNAvmCtdRtTjEanDG"
BALANCE_SEED = b"balance"
VAULT_SEED = b"vault"
LAMPORTS_PER_SOL = 1_000_000_000
KEY_DERIVATION_CHALLENGE = "VeilPay Privacy: Sign to derive encryption key"

# ===== Cluster =====
SOLANA_RPC_URL: str = os.getenv("SOLANA_RPC_URL", "https://api.devnet.solana.com")
RPC_TIMEOUT_SEC: float = float(os.getenv("RPC_TIMEOUT_SEC", "30"))

# "processed" is the lowest finality tier; kept as default to match the web client
CONFIRM_COMMITMENT: str = os.getenv("CONFIRM_COMMITMENT", "processed")
CONFIRM_POLL_INTERVAL_SEC: float = float(os.getenv("CONFIRM_POLL_INTERVAL_SEC", "0.5"))

# deployment.json is written by the deploy script next to the IDL
DEPLOYMENT_CONFIG_PATH = pathlib.Path(
    os.getenv("DEPLOYMENT_CONFIG", str(REPO_ROOT / "idl" / "deployment.json"))
)

# ===== Wallet / logging =====
VEILPAY_KEYFILE: str = os.getenv("VEILPAY_KEYFILE", "keys/user.json")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
VERBOSE: bool = bool(int(os.getenv("VERBOSE", "0")))


def program_id_from_deployment(path: pathlib.Path = DEPLOYMENT_CONFIG_PATH) -> Optional[str]:
    """Return the programId recorded by the last deployment, if any."""
    try:
        return json.loads(path.read_text()).get("programId") or None
    except (OSError, ValueError, AttributeError):
        return None


PROGRAM_ID: str = os.getenv("PROGRAM_ID") or program_id_from_deployment() or DEFAULT_PROGRAM_ID
