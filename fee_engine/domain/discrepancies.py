"""Compares calculated fees against reference figures and classifies the gaps."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import Iterable, Sequence

from fee_engine.config import SETTINGS

from .errors import FeeEngineError
from .fees import FeeCalculator
from .models import FeeCalculationResult, Transaction
from .money import add_money, normalize_money
from .months import first_day_of_previous_month
from .volume import MonthlyVolumeSource

CONVERTED_TOLERANCE = Decimal("0.02")
KNOWN_RATE_TOLERANCE = Decimal("0.0006")
TIER_RATE_TOLERANCE = Decimal("0.0003")
IMPLIED_RATE_QUANTUM = Decimal("0.000001")


class DiscrepancyKind(str, Enum):
    ERROR = "ERROR"
    RATE_OR_CONVERTED = "RATE_OR_CONVERTED"
    ANOMALY_FEE_RATE = "ANOMALY_FEE_RATE"
    MISSING_HISTORY_FOR_GRACE = "MISSING_HISTORY_FOR_GRACE"
    TIER_OR_RULES = "TIER_OR_RULES"
    ROUNDING = "ROUNDING"


@dataclass(frozen=True)
class Discrepancy:
    """One transaction whose calculated figures differ from the reference."""

    transaction_id: str
    kind: DiscrepancyKind
    message: str = ""
    result: FeeCalculationResult | None = None
    original_fee: Decimal | None = None
    original_final_amount: Decimal | None = None
    implied_converted: Decimal | None = None
    implied_fee_rate: Decimal | None = None


@dataclass(frozen=True)
class DiscrepancySummary:
    total_transactions: int
    compared: int
    matched: int
    by_kind: dict[DiscrepancyKind, int]
    generated_at: datetime


@dataclass(frozen=True)
class DiscrepancyReport:
    summary: DiscrepancySummary
    discrepancies: Sequence[Discrepancy] = field(default_factory=tuple)

    def has_issues(self) -> bool:
        return bool(self.discrepancies)

    def iter_all_discrepancies(self) -> Iterable[Discrepancy]:
        yield from self.discrepancies


def implied_fee_rate(fee: Decimal, converted: Decimal) -> Decimal:
    if converted == 0:
        return Decimal("0")
    ratio = SETTINGS.decimal_context.divide(fee, converted)
    return ratio.quantize(IMPLIED_RATE_QUANTUM, rounding=ROUND_DOWN)


def _is_near(a: Decimal, b: Decimal, tolerance: Decimal) -> bool:
    return abs(a - b) <= tolerance


class DiscrepancyAnalyzer:
    """Recalculates every transaction carrying reference values.

    Matching transactions are dropped; the rest are classified by the most
    likely cause, checked in order: conversion, unknown fee rate, missing
    grace history, tier rules, and finally rounding.
    """

    def __init__(self, calculator: FeeCalculator, volume_source: MonthlyVolumeSource) -> None:
        self._calculator = calculator
        self._volumes = volume_source
        self._gold_rate = SETTINGS.fee_rates["GOLD"]

    def analyze(self, transactions: Sequence[Transaction]) -> DiscrepancyReport:
        discrepancies: list[Discrepancy] = []
        compared = 0
        for tx in transactions:
            if tx.original_fee is None or tx.original_final_amount is None:
                continue
            compared += 1
            discrepancy = self.inspect(tx)
            if discrepancy is not None:
                discrepancies.append(discrepancy)

        counts = Counter(item.kind for item in discrepancies)
        summary = DiscrepancySummary(
            total_transactions=len(transactions),
            compared=compared,
            matched=compared - len(discrepancies),
            by_kind={kind: counts.get(kind, 0) for kind in DiscrepancyKind},
            generated_at=datetime.now(timezone.utc),
        )
        return DiscrepancyReport(summary=summary, discrepancies=tuple(discrepancies))

    def inspect(self, tx: Transaction) -> Discrepancy | None:
        original_fee = normalize_money(tx.original_fee)
        original_final = normalize_money(tx.original_final_amount)
        implied_converted = add_money(original_fee, original_final)
        implied_rate = implied_fee_rate(original_fee, implied_converted)

        try:
            result = self._calculator.calculate(tx)
        except FeeEngineError as exc:
            return Discrepancy(
                transaction_id=tx.external_id,
                kind=DiscrepancyKind.ERROR,
                message=str(exc),
                original_fee=original_fee,
                original_final_amount=original_final,
            )

        if original_fee == result.fee and original_final == result.final_amount:
            return None

        kind = self._classify(tx, result, implied_converted, implied_rate)
        return Discrepancy(
            transaction_id=tx.external_id,
            kind=kind,
            message=f"fee {original_fee} vs {result.fee}, final {original_final} vs {result.final_amount}",
            result=result,
            original_fee=original_fee,
            original_final_amount=original_final,
            implied_converted=implied_converted,
            implied_fee_rate=implied_rate,
        )

    def _classify(
        self,
        tx: Transaction,
        result: FeeCalculationResult,
        implied_converted: Decimal,
        implied_rate: Decimal,
    ) -> DiscrepancyKind:
        if abs(implied_converted - result.converted) > CONVERTED_TOLERANCE:
            return DiscrepancyKind.RATE_OR_CONVERTED

        known_rates = SETTINGS.fee_rates.values()
        if not any(_is_near(implied_rate, rate, KNOWN_RATE_TOLERANCE) for rate in known_rates):
            return DiscrepancyKind.ANOMALY_FEE_RATE

        if (
            tx.created_at.day <= SETTINGS.grace_last_day
            and _is_near(implied_rate, self._gold_rate, TIER_RATE_TOLERANCE)
            and not _is_near(result.fee_rate, self._gold_rate, TIER_RATE_TOLERANCE)
            and tx.client is not None
        ):
            previous_month = first_day_of_previous_month(tx.created_at)
            if self._volumes.monthly_volume_eur(tx.client, previous_month) == 0:
                return DiscrepancyKind.MISSING_HISTORY_FOR_GRACE

        if not _is_near(implied_rate, result.fee_rate, TIER_RATE_TOLERANCE):
            return DiscrepancyKind.TIER_OR_RULES

        return DiscrepancyKind.ROUNDING
