# crypto_core/commitments.py
from __future__ import annotations

from solders.pubkey import Pubkey

from veilpay.crypto_core.amount_codec import CIPHERTEXT_LEN, u64_le

COMMITMENT_LEN = 32
TAG_LEN = 32
SECRET_LEN = 32


def _cycle(combined: bytes, length: int, mask: int = 0) -> bytes:
    # out[i] = combined[i mod len(combined)] ^ mask
    return bytes(combined[i % len(combined)] ^ mask for i in range(length))


def derive_commitment(ciphertext: bytes, nonce: int, recipient: Pubkey) -> bytes:
    """
    Bind (ciphertext, nonce, recipient) into 32 bytes.

    combined = ciphertext || u64le(nonce) || recipient
    out[i]   = combined[i % len(combined)] XOR (nonce % 256)

    The program recomputes exactly this value, so it must stay bit-exact.
    """
    if len(ciphertext) != CIPHERTEXT_LEN:
        raise ValueError(f"ciphertext must be {CIPHERTEXT_LEN} bytes, got {len(ciphertext)}")
    combined = ciphertext + u64_le(nonce) + bytes(recipient)
    return _cycle(combined, COMMITMENT_LEN, nonce % 256)


def derive_tag(recipient: Pubkey, secret: bytes) -> bytes:
    """Recipient tag for off-chain discovery: cycle over recipient || secret."""
    if len(secret) != SECRET_LEN:
        raise ValueError(f"sender secret must be {SECRET_LEN} bytes, got {len(secret)}")
    return _cycle(bytes(recipient) + secret, TAG_LEN)


class CommitmentScheme:
    """Commitment and tag derivation, swappable without touching the orchestrator."""

    name = "abstract"

    def commitment(self, ciphertext: bytes, nonce: int, recipient: Pubkey) -> bytes:
        raise NotImplementedError

    def tag(self, recipient: Pubkey, secret: bytes) -> bytes:
        raise NotImplementedError


class PlaceholderCommitmentScheme(CommitmentScheme):
    name = "xor-placeholder"

    def commitment(self, ciphertext: bytes, nonce: int, recipient: Pubkey) -> bytes:
        return derive_commitment(ciphertext, nonce, recipient)

    def tag(self, recipient: Pubkey, secret: bytes) -> bytes:
        return derive_tag(recipient, secret)


DEFAULT_SCHEME = PlaceholderCommitmentScheme()
