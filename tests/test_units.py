"""Tests for decimal string <-> base unit conversion."""

from decimal import Decimal

import pytest

from pyferry.models import StakePosition, format_units, parse_units, to_decimal


@pytest.mark.parametrize(
    "text,decimals,expected",
    [
        ("0.01", 9, 10_000_000),
        ("1", 18, 10**18),
        ("1.5", 18, 15 * 10**17),
        ("0.000000001", 9, 1),
        (" 2.0 ", 6, 2_000_000),
    ],
)
def test_parse_units(text, decimals, expected):
    assert parse_units(text, decimals) == expected


def test_parse_units_rejects_excess_precision():
    with pytest.raises(ValueError, match="decimal places"):
        parse_units("0.0000000001", 9)


@pytest.mark.parametrize("text", ["1e999999", "1e-999999999", "1e80"])
def test_out_of_range_exponents_rejected(text):
    with pytest.raises(ValueError, match="out of range"):
        parse_units(text, 9)


@pytest.mark.parametrize("text", ["abc", "", "NaN", "Infinity", "-inf", "1e", "0x10"])
def test_non_numbers_rejected(text):
    with pytest.raises(ValueError):
        to_decimal(text)


@pytest.mark.parametrize(
    "units,decimals,expected",
    [
        (10 * 10**18, 18, "10.0"),
        (10**18, 18, "1.0"),
        (0, 18, "0.0"),
        (15 * 10**17, 18, "1.5"),
        (1, 9, "0.000000001"),
        (10_000_000, 9, "0.01"),
        (-5 * 10**17, 18, "-0.5"),
        (42, 0, "42.0"),
    ],
)
def test_format_units(units, decimals, expected):
    assert format_units(units, decimals) == expected


def test_large_values_keep_full_precision():
    units = 123_456_789_012_345_678_901_234_567_890
    text = format_units(units, 18)

    assert text == "123456789012.34567890123456789"
    assert parse_units(text, 18) == units


def test_position_amounts_are_decimals():
    position = StakePosition(
        staked=10**18, loaned=10 * 10**18, staked_decimals=18, loaned_decimals=18
    )

    assert position.staked_amount == Decimal("1")
    assert position.loaned_amount == Decimal("10")
    assert position.to_dict() == {"stakedAmount": "1.0", "loanedAmount": "10.0"}
    assert not position.is_empty
