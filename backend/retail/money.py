# Overview: Money parsing, wire formatting and UGX/USD conversion.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .validation import ValidationError

# Maximum amount: 999,999,999,999.99 in any document currency
MAX_AMOUNT_CENTS = 99_999_999_999_999

_CENT = Decimal("1")


def to_cents(value: Any, *, field: str = "amount") -> int | None:
    """
    Parse a wire amount (major units) into integer cents.

    Accepts ints, floats and numeric strings ("1,200.50", "$5").
    None / "" -> None. Rounds half-up to the cent.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = str(value).strip().replace("$", "").replace(",", "")
        if not text:
            return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    cents = int((amount * 100).quantize(_CENT, rounding=ROUND_HALF_UP))
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} is too large")
    return cents


def from_cents(cents: int | None) -> float | int | None:
    """Wire representation: plain number in major units."""
    if cents is None:
        return None
    if cents % 100 == 0:
        return cents // 100
    return cents / 100


def _div_half_up(numerator: int, denominator: int) -> int:
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(_CENT, rounding=ROUND_HALF_UP))


def convert_cents(cents: int, *, from_currency: str, to_currency: str, rate: int) -> int:
    """
    Convert an amount between UGX and USD at `rate` UGX per USD.

    UGX -> USD divides and rounds half-up to the cent; USD -> UGX multiplies.
    """
    if from_currency == to_currency:
        return cents
    if from_currency == "UGX" and to_currency == "USD":
        return _div_half_up(cents, rate)
    if from_currency == "USD" and to_currency == "UGX":
        return cents * rate
    raise ValidationError(f"Unsupported conversion {from_currency} -> {to_currency}")


def normalize_totals(by_currency: dict[str, int], *, rate: int) -> tuple[int, int]:
    """
    Fold per-currency sums into (UGX cents, USD cents) using one rate.

    Each currency's own sum is kept exact; only the other side is converted.
    """
    ugx = 0
    usd = 0
    for currency, cents in by_currency.items():
        if currency == "USD":
            usd += cents
            ugx += cents * rate
        else:
            ugx += cents
            usd += _div_half_up(cents, rate)
    return ugx, usd
