import pytest
from solders.pubkey import Pubkey

from veilpay.errors import InvalidAddress, InvalidAmount
from veilpay.transfer.validation import format_sol, parse_amount, parse_recipient


@pytest.mark.parametrize(
    "text,lamports",
    [
        ("1.5", 1_500_000_000),
        ("0.005", 5_000_000),
        ("1", 1_000_000_000),
        (" 2.25 ", 2_250_000_000),
        ("0.000000001", 1),
    ],
)
def test_parse_amount_scales_to_lamports(text, lamports):
    assert parse_amount(text) == lamports


@pytest.mark.parametrize(
    "text,lamports",
    [
        ("0.0000000005", 1),
        ("0.0000000015", 2),
        ("0.0000000025", 3),
        ("0.0000000024", 2),
        ("1.0000000026", 1_000_000_003),
        ("1.0000000015", 1_000_000_001),  # float product is just below the half
    ],
)
def test_parse_amount_rounds_like_float_math_round(text, lamports):
    assert parse_amount(text) == lamports


@pytest.mark.parametrize("text", ["-5", "0", "0.0", "abc", "", "NaN", "Infinity", "1e30", "0.0000000004"])
def test_parse_amount_rejects(text):
    with pytest.raises(InvalidAmount):
        parse_amount(text)


def test_parse_amount_custom_unit_factor():
    assert parse_amount("0.005", unit_factor=1_000) == 5
    assert parse_amount("0.0005", unit_factor=1_000) == 1


def test_parse_recipient():
    pk = Pubkey(bytes([3] * 32))
    assert parse_recipient(str(pk)) == pk
    assert parse_recipient(f"  {pk}\n") == pk


@pytest.mark.parametrize("text", ["", "not-a-key", "0OIl", "1" * 60])
def test_parse_recipient_rejects(text):
    with pytest.raises(InvalidAddress):
        parse_recipient(text)


def test_format_sol():
    assert format_sol(1_500_000_000) == "1.500000000"
    assert format_sol(1) == "0.000000001"
