# wallet/identity.py
from __future__ import annotations

import json
from pathlib import Path

import base58
from nacl.signing import SigningKey
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from veilpay.errors import CapabilityUnsupported


class SigningIdentity:
    """
    The connected wallet as seen by the transfer flow.

    sign_message() may wait on a human approving the request; there is no
    timeout on our side.
    """

    def __init__(self, pubkey: Pubkey):
        self.pubkey = pubkey

    @property
    def can_sign_messages(self) -> bool:
        return False

    async def sign_message(self, message: bytes) -> bytes:
        raise CapabilityUnsupported("Wallet does not support message signing!")

    async def sign_transaction(self, message: Message, recent_blockhash: Hash) -> Transaction:
        raise CapabilityUnsupported("Wallet cannot sign transactions")


class WatchOnlyIdentity(SigningIdentity):
    """Knows only a public key (hardware wallet without message signing, viewer mode)."""


def read_secret_64(raw: str) -> bytes:
    """
    Accept a solana-keygen JSON array (64 ints), a base58 64-byte secret, or a
    base58 32-byte seed. Returns the 64-byte secret||pub form.
    """
    raw = raw.strip()
    if raw.startswith("["):
        sk = bytes(json.loads(raw))
    else:
        sk = base58.b58decode(raw)
    if len(sk) == 32:
        signing = SigningKey(sk)
        sk = sk + bytes(signing.verify_key)
    if len(sk) != 64:
        raise ValueError(f"expected a 64-byte secret key, got {len(sk)} bytes")
    return sk


class KeyfileIdentity(SigningIdentity):
    def __init__(self, secret64: bytes):
        self._keypair = Keypair.from_bytes(secret64)
        self._signing_key = SigningKey(secret64[:32])
        super().__init__(self._keypair.pubkey())

    @classmethod
    def from_file(cls, path: str | Path) -> "KeyfileIdentity":
        return cls(read_secret_64(Path(path).read_text()))

    @property
    def can_sign_messages(self) -> bool:
        return True

    async def sign_message(self, message: bytes) -> bytes:
        return self._signing_key.sign(message).signature

    async def sign_transaction(self, message: Message, recent_blockhash: Hash) -> Transaction:
        return Transaction([self._keypair], message, recent_blockhash)
