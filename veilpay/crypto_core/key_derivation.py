# crypto_core/key_derivation.py
from __future__ import annotations

import hashlib

from veilpay.config import KEY_DERIVATION_CHALLENGE


def challenge_message() -> bytes:
    return KEY_DERIVATION_CHALLENGE.encode("utf-8")


def derive_secret(signature: bytes) -> bytes:
    """
    Sender secret = SHA-256 over the hex text of the wallet's signature on the
    fixed challenge. Ed25519 signatures are deterministic, so the same wallet
    always gets the same secret.
    """
    if not signature:
        raise ValueError("empty signature")
    return hashlib.sha256(bytes(signature).hex().encode("ascii")).digest()
