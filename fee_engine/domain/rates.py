"""Exchange-rate resolution: direct, inverse, then one pivot hop."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Sequence

from fee_engine.config import SETTINGS

from .money import invert_rate, mul_rate
from .months import as_date
from .repositories import RateStore

ONE = Decimal("1")


class RateResolver:
    """Returns the applicable rate for a currency pair on a date.

    Lookup order, first match wins:

    1. identical currencies resolve to exactly 1;
    2. the direct pair, verbatim;
    3. the inverse pair, as ``1 / rate`` truncated to 8 digits;
    4. a cross rate through the first pivot (EUR, USD, CHF) whose two legs
       both resolve directly or inversely, truncated to 8 digits.

    Nothing is cached here; callers above this layer cache what they need.
    """

    def __init__(self, rate_store: RateStore, pivot_currencies: Sequence[str] | None = None) -> None:
        self._rates = rate_store
        if pivot_currencies is None:
            pivot_currencies = SETTINGS.pivot_currencies
        self._pivots = tuple(pivot_currencies)

    def get_rate(self, source: str, target: str, on: date | datetime) -> Decimal | None:
        source = (source or "").strip().upper()
        target = (target or "").strip().upper()
        on = as_date(on)

        if not source or not target:
            return None
        if source == target:
            return ONE

        direct = self._rates.find_applicable_rate(source, target, on)
        if direct is not None:
            return direct.rate

        inverse = self._rates.find_applicable_rate(target, source, on)
        if inverse is not None:
            inverted = invert_rate(inverse.rate)
            if inverted is not None:
                return inverted

        for pivot in self._pivots:
            if pivot in (source, target):
                continue
            first_leg = self._direct_or_inverse(source, pivot, on)
            if first_leg is None:
                continue
            second_leg = self._direct_or_inverse(pivot, target, on)
            if second_leg is None:
                continue
            return mul_rate(first_leg, second_leg)

        return None

    def _direct_or_inverse(self, source: str, target: str, on: date) -> Decimal | None:
        if source == target:
            return ONE
        direct = self._rates.find_applicable_rate(source, target, on)
        if direct is not None:
            return direct.rate
        inverse = self._rates.find_applicable_rate(target, source, on)
        if inverse is not None:
            return invert_rate(inverse.rate)
        return None
