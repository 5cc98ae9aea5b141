"""
Fixed-point money and rate arithmetic.

Monetary quantities carry exactly 2 fractional digits, stored rates up to 8,
and the rate used for a conversion 4. Products are first cut to 6 fractional
digits, then rounded HALF-UP to the target scale, which reproduces the legacy
ledger figures to the cent. Everything here is Decimal; floats are rejected.
"""
from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from fee_engine.config import SETTINGS

MONEY_SCALE = 2
CONVERSION_RATE_SCALE = 4
INTERMEDIATE_SCALE = 6
RATE_SCALE = 8

ZERO_MONEY = Decimal("0.00")

_CONTEXT = SETTINGS.decimal_context.copy()
_TRUNCATING = SETTINGS.decimal_context.copy()
_TRUNCATING.rounding = ROUND_DOWN


def _quantum(scale: int) -> Decimal:
    return Decimal(1).scaleb(-scale)


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Parse an exact decimal; raises ValueError for floats, blanks and garbage."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Refusing inexact numeric input: {value!r}")
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        text = str(value).strip()
        try:
            result = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"Not a decimal number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite decimal number: {value!r}")
    return result


def normalize_money(value: Decimal | int | str) -> Decimal:
    """Pad or truncate to 2 fractional digits; never rounds.

    >>> normalize_money("10"), normalize_money("2.5"), normalize_money("1.239")
    (Decimal('10.00'), Decimal('2.50'), Decimal('1.23'))
    """
    if isinstance(value, str) and not value.strip():
        return ZERO_MONEY
    return to_decimal(value).quantize(_quantum(MONEY_SCALE), rounding=ROUND_DOWN, context=_CONTEXT)


def round_half_up(value: Decimal | int | str, scale: int) -> Decimal:
    """Keep ``scale`` digits; a dropped digit >= 5 carries into the kept part."""
    return to_decimal(value).quantize(_quantum(scale), rounding=ROUND_HALF_UP, context=_CONTEXT)


def mul_round(a: Decimal | int | str, b: Decimal | int | str, scale: int = MONEY_SCALE) -> Decimal:
    raw = _TRUNCATING.multiply(to_decimal(a), to_decimal(b))
    raw = raw.quantize(_quantum(INTERMEDIATE_SCALE), rounding=ROUND_DOWN, context=_TRUNCATING)
    return round_half_up(raw, scale)


def add_money(a: Decimal, b: Decimal) -> Decimal:
    total = _CONTEXT.add(to_decimal(a), to_decimal(b))
    return total.quantize(_quantum(MONEY_SCALE), rounding=ROUND_DOWN, context=_CONTEXT)


def sub_money(a: Decimal, b: Decimal) -> Decimal:
    diff = _CONTEXT.subtract(to_decimal(a), to_decimal(b))
    return diff.quantize(_quantum(MONEY_SCALE), rounding=ROUND_DOWN, context=_CONTEXT)


def round_rate(rate: Decimal | str, scale: int = CONVERSION_RATE_SCALE) -> Decimal:
    return round_half_up(rate, scale)


def invert_rate(rate: Decimal | str) -> Decimal | None:
    """``1 / rate`` truncated to 8 digits, or None for a non-positive rate."""
    try:
        value = to_decimal(rate)
    except (TypeError, ValueError):
        return None
    if value <= 0:
        return None
    inverse = _TRUNCATING.divide(Decimal(1), value)
    return inverse.quantize(_quantum(RATE_SCALE), rounding=ROUND_DOWN, context=_TRUNCATING)


def mul_rate(a: Decimal, b: Decimal, scale: int = RATE_SCALE) -> Decimal:
    product = _TRUNCATING.multiply(to_decimal(a), to_decimal(b))
    return product.quantize(_quantum(scale), rounding=ROUND_DOWN, context=_TRUNCATING)
