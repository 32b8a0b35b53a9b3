# transfer/validation.py
from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation

from solders.pubkey import Pubkey

from veilpay.config import LAMPORTS_PER_SOL
from veilpay.crypto_core.amount_codec import U64_MAX
from veilpay.errors import InvalidAddress, InvalidAmount


def parse_recipient(value: str) -> Pubkey:
    text = (value or "").strip()
    if not text:
        raise InvalidAddress("Recipient address is required")
    try:
        return Pubkey.from_string(text)
    except Exception as e:  # solders raises its own parse errors
        raise InvalidAddress(f"Invalid recipient address: {text!r}") from e


def parse_amount(value: str, unit_factor: int = LAMPORTS_PER_SOL) -> int:
    """
    Decimal SOL string -> integer lamports.

    The text is validated as a Decimal, then scaled and rounded in binary
    floating point as floor(x * unit_factor + 0.5), the same arithmetic as
    JavaScript Math.round(parseFloat(x) * LAMPORTS_PER_SOL). Exact decimal
    halves can therefore land either way: "0.0000000025" -> 3 but
    "1.0000000015" -> 1000000001.
    """
    text = (value or "").strip()
    try:
        d = Decimal(text)
    except InvalidOperation:
        raise InvalidAmount(f"Invalid amount: {text!r}") from None
    if not d.is_finite() or d <= 0:
        raise InvalidAmount(f"Invalid amount: {text!r}")
    if d > U64_MAX:
        raise InvalidAmount(f"Amount {text} does not fit in 64 bits")

    units = int(math.floor(float(d) * unit_factor + 0.5))
    if units <= 0:
        raise InvalidAmount(f"Amount {text} is below one base unit")
    if units > U64_MAX:
        raise InvalidAmount(f"Amount {text} does not fit in 64 bits")
    return units


def format_sol(lamports: int, unit_factor: int = LAMPORTS_PER_SOL) -> str:
    return str((Decimal(lamports) / Decimal(unit_factor)).quantize(Decimal("0.000000001")))
