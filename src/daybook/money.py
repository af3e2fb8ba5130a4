"""Money helpers: lenient input coercion and pt-BR currency formatting."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
# Anything at or above these is treated as a typo, not an amount
MAX_AMOUNT = Decimal("1e15")
MAX_COUNT = 1_000_000


def to_money(value: Any) -> Decimal:
    """Coerce user or document input to a two-decimal amount.

    Anything that does not parse (None, "", "abc", NaN, infinities) is zero,
    so a form stays usable while the user is still typing. So is an amount
    too large to be real, such as ``"1e30"``.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip()
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return ZERO
    if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
        return ZERO
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def to_count(value: Any) -> int:
    """Coerce input to a non-negative integer count (invalid -> 0)."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if 0 <= value < MAX_COUNT else 0
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return 0
    if not amount.is_finite() or abs(amount) >= MAX_COUNT:
        return 0
    # Truncates like parseInt("3.7") -> 3
    return max(int(amount), 0)


def to_number(amount: Decimal) -> float | int:
    """Convert an amount to a JSON number for storage."""
    quantized = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if quantized == quantized.to_integral_value():
        return int(quantized)
    return float(quantized)


def format_currency(value: Any) -> str:
    """Format an amount as Brazilian reais, e.g. ``R$ 1.234,56``."""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    whole, _, cents = f"{abs(amount):,.2f}".partition(".")
    return f"{sign}R$ {whole.replace(',', '.')},{cents}"
