# crypto_core/amount_codec.py
"""
Amount "encryption" used by the VeilPay program.

The scheme is a deterministic placeholder: each 32-byte half of the 64-byte
ciphertext is SHA-256 of the little-endian amount followed by a half selector.
The digest is taken over the lowercase hex text of those bytes, which is what
the web client and the program agree on. There is no client-side decode.
"""
from __future__ import annotations

import hashlib
import struct

from veilpay.errors import InvalidAmount

CIPHERTEXT_LEN = 64
HALF_LEN = 32
U64_MAX = 2**64 - 1


def u64_le(value: int) -> bytes:
    if not 0 <= value <= U64_MAX:
        raise InvalidAmount(f"Value {value} does not fit in 64 bits")
    return struct.pack("<Q", value)


def sha256_hex_text(data: bytes) -> bytes:
    return hashlib.sha256(data.hex().encode("ascii")).digest()


def ciphertext_halves(ciphertext: bytes) -> tuple[bytes, bytes]:
    """Split a ciphertext into (c1, c2)."""
    if len(ciphertext) != CIPHERTEXT_LEN:
        raise ValueError(f"ciphertext must be {CIPHERTEXT_LEN} bytes, got {len(ciphertext)}")
    return ciphertext[:HALF_LEN], ciphertext[HALF_LEN:]


class AmountCodec:
    """Turns a lamport amount into the opaque 64-byte value carried on-chain."""

    name = "abstract"

    def encode(self, amount: int) -> bytes:
        raise NotImplementedError


class Sha256AmountCodec(AmountCodec):
    name = "sha256-placeholder"

    def encode(self, amount: int) -> bytes:
        amount_bytes = u64_le(amount)
        c1 = sha256_hex_text(amount_bytes + b"c1")
        c2 = sha256_hex_text(amount_bytes + b"c2")
        return c1 + c2


DEFAULT_CODEC = Sha256AmountCodec()


def encode(amount: int) -> bytes:
    return DEFAULT_CODEC.encode(amount)
