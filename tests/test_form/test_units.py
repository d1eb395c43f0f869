from decimal import Decimal

import pytest

from app.states.form import MintInfo
from app.utils.formatting import amount_to_raw, fmt_money_str, parse_decimal, precision
from app.utils.units import (
    MAX_SAFE_NUMBER, get_mint_min_amount_as_decimal, get_mint_natural_amount_from_decimal, normalize_amount
)


def test_min_amount_follows_decimals():
    assert get_mint_min_amount_as_decimal(MintInfo(decimals=6)) == Decimal("0.000001")
    assert get_mint_min_amount_as_decimal(MintInfo(decimals=0)) == Decimal(1)


@pytest.mark.parametrize("value, places", [
    (Decimal("0.001"), 3),
    (Decimal("1"), 0),
    (Decimal("0.000000001"), 9),
    (Decimal("2.50"), 1),
])
def test_precision(value, places):
    assert precision(value) == places


def test_normalize_clamps_negative_to_min_unit():
    assert normalize_amount("-5", Decimal("0.01")) == Decimal("0.01")


def test_normalize_clamps_to_max_safe_number():
    result = normalize_amount("100000000000000000", Decimal("0.01"))
    assert result == MAX_SAFE_NUMBER
    assert str(result) == "9007199254740991.00"


def test_normalize_keeps_values_below_max():
    assert normalize_amount("1000000000000000", Decimal("0.01")) == Decimal("1000000000000000")


def test_normalize_rounds_half_up():
    assert normalize_amount("3.456", Decimal("0.01")) == Decimal("3.46")
    assert normalize_amount("3.445", Decimal("0.01")) == Decimal("3.45")
    assert normalize_amount("2.5", Decimal(1)) == Decimal(3)


@pytest.mark.parametrize("raw", [None, "", "abc"])
def test_normalize_empty_input_yields_min_unit(raw):
    assert normalize_amount(raw, Decimal("0.001")) == Decimal("0.001")


@pytest.mark.parametrize("raw", ["12.3456789", "-1", "0", "99999999999999999999", "7"])
def test_normalize_is_idempotent(raw):
    min_unit = Decimal("0.000001")
    once = normalize_amount(raw, min_unit)
    assert normalize_amount(once, min_unit) == once


def test_natural_amount():
    assert get_mint_natural_amount_from_decimal(Decimal("12.345679"), 6) == 12345679


def test_parse_decimal_accepts_comma_and_rejects_garbage():
    assert parse_decimal("1,5") == Decimal("1.5")
    assert parse_decimal("nan") is None
    assert parse_decimal("x") is None


def test_fmt_money_str_keeps_fraction():
    assert fmt_money_str("1234567.000001") == "1 234 567.000001"
    assert fmt_money_str(None) == "—"


def test_keypad_continues_committed_tiny_amount():
    committed = normalize_amount("", Decimal("0.000000001"))
    raw = amount_to_raw(committed)
    assert raw == "0.000000001"
    assert parse_decimal(raw + "5") == Decimal("0.0000000015")


def test_amount_to_raw_keeps_typed_text():
    assert amount_to_raw("1.") == "1."
    assert amount_to_raw(None) == ""
    assert amount_to_raw(Decimal("9007199254740991.00")) == "9007199254740991.00"
