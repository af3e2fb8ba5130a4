"""Tests for money coercion and formatting."""

from decimal import Decimal

import pytest

from daybook.money import format_currency, to_count, to_money, to_number


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, "0.00"),
        ("", "0.00"),
        ("abc", "0.00"),
        (float("nan"), "0.00"),
        ("Infinity", "0.00"),
        (True, "0.00"),
        ("12.5", "12.50"),
        ("12,5", "12.50"),
        (7, "7.00"),
        (0.1 + 0.2, "0.30"),
        ("-3.456", "-3.46"),
    ],
)
def test_to_money_coerces_invalid_input_to_zero(raw, expected):
    assert to_money(raw) == Decimal(expected)


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 0), ("", 0), ("x", 0), (3, 3), ("4", 4), ("3.7", 3), (-2, 0), ("-5", 0)],
)
def test_to_count_is_a_non_negative_integer(raw, expected):
    assert to_count(raw) == expected


def test_to_number_keeps_whole_amounts_integral():
    assert to_number(Decimal("10.00")) == 10
    assert isinstance(to_number(Decimal("10.00")), int)
    assert to_number(Decimal("7.50")) == 7.5


def test_format_currency_uses_brazilian_format():
    assert format_currency(Decimal("1234.56")) == "R$ 1.234,56"
    assert format_currency(0) == "R$ 0,00"
    assert format_currency("-5") == "-R$ 5,00"
    assert format_currency(None) == "R$ 0,00"


@pytest.mark.parametrize("raw", ["1" * 30, "1e30", "1e999999999", Decimal("1e20"), 10**16])
def test_to_money_treats_absurd_magnitudes_as_zero(raw):
    assert to_money(raw) == Decimal("0.00")


def test_to_money_keeps_large_but_plausible_amounts():
    assert to_money("999999999999.99") == Decimal("999999999999.99")


@pytest.mark.parametrize("raw", ["1" * 30, "1e30", "1e999999999", 10**9])
def test_to_count_treats_absurd_magnitudes_as_zero(raw):
    assert to_count(raw) == 0
