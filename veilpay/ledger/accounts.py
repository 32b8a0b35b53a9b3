# ledger/accounts.py
from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from veilpay.api.logging_config import get_logger
from veilpay.config import BALANCE_SEED, VAULT_SEED
from veilpay.errors import AccountNotFound

logger = get_logger("ledger.accounts")

BALANCE_ACCOUNT_NAME = "ConfidentialBalance"

# discriminator(8) | owner(32) | encrypted_balance(64) | nonce(u64) | bump(u8)
_BALANCE_LAYOUT = struct.Struct("<8s32s64sQB")


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


def balance_address(owner: Pubkey, program_id: Pubkey) -> Pubkey:
    """PDA holding `owner`'s confidential balance: seeds [b"balance", owner]."""
    pda, _bump = Pubkey.find_program_address([BALANCE_SEED, bytes(owner)], program_id)
    return pda


def vault_address(program_id: Pubkey) -> Pubkey:
    pda, _bump = Pubkey.find_program_address([VAULT_SEED], program_id)
    return pda


@dataclass(frozen=True)
class AccountInfo:
    lamports: int
    owner: Pubkey
    data: bytes
    executable: bool = False


@dataclass(frozen=True)
class BalanceAccountState:
    owner: Pubkey
    encrypted_balance: bytes
    nonce: int
    bump: int


def decode_balance_account(data: bytes) -> BalanceAccountState:
    if len(data) < _BALANCE_LAYOUT.size:
        raise ValueError(
            f"{BALANCE_ACCOUNT_NAME} data too short: {len(data)} < {_BALANCE_LAYOUT.size}"
        )
    disc, owner, encrypted, nonce, bump = _BALANCE_LAYOUT.unpack_from(data)
    if disc != account_discriminator(BALANCE_ACCOUNT_NAME):
        raise ValueError(f"account is not a {BALANCE_ACCOUNT_NAME}")
    return BalanceAccountState(Pubkey(owner), encrypted, nonce, bump)


def encode_balance_account(state: BalanceAccountState) -> bytes:
    """Inverse of decode_balance_account (fixtures, local simulation)."""
    return _BALANCE_LAYOUT.pack(
        account_discriminator(BALANCE_ACCOUNT_NAME),
        bytes(state.owner),
        bytes(state.encrypted_balance),
        state.nonce,
        state.bump,
    )


class LedgerClient:
    """Read side of the cluster connection."""

    async def get_account_info(self, address: Pubkey) -> Optional[AccountInfo]:
        raise NotImplementedError

    async def fetch_balance_account_state(self, address: Pubkey) -> BalanceAccountState:
        info = await self.get_account_info(address)
        if info is None:
            raise AccountNotFound(f"No account at {address}")
        return decode_balance_account(info.data)


class AccountStateReader:
    """Existence and sequence-counter queries for balance accounts."""

    def __init__(self, client: LedgerClient):
        self.client = client

    async def exists(self, address: Pubkey) -> bool:
        return await self.client.get_account_info(address) is not None

    async def get_sequence_counter(self, address: Pubkey) -> int:
        """Single account read; AccountNotFound when nothing is allocated at `address`."""
        state = await self.client.fetch_balance_account_state(address)
        logger.debug("balance account %s nonce=%d", address, state.nonce)
        return state.nonce
