"""Application services orchestrating one fee engine run."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fee_engine.domain.discrepancies import DiscrepancyAnalyzer, DiscrepancyReport
from fee_engine.domain.errors import ClientNotFound, TransactionNotFound
from fee_engine.domain.fees import FeeCalculator
from fee_engine.domain.models import FeeCalculationResult
from fee_engine.domain.rates import RateResolver
from fee_engine.domain.repositories import (
    ClientDirectory,
    RateStore,
    TransactionLedger,
    TransactionStore,
)
from fee_engine.domain.tiers import TierExplanation, TierResolver
from fee_engine.domain.volume import MonthlyVolumeAggregator


@dataclass(slots=True)
class FeeEngineContext:
    """Services wired for a single run; the volume cache lives as long as this."""

    clients: ClientDirectory
    ledger: TransactionLedger
    rate_resolver: RateResolver
    volumes: MonthlyVolumeAggregator
    tier_resolver: TierResolver
    calculator: FeeCalculator

    @classmethod
    def build(
        cls,
        clients: ClientDirectory,
        rates: RateStore,
        transactions: TransactionStore,
        ledger: TransactionLedger,
    ) -> FeeEngineContext:
        rate_resolver = RateResolver(rates)
        volumes = MonthlyVolumeAggregator(transactions, rate_resolver)
        tier_resolver = TierResolver(volumes)
        return cls(
            clients=clients,
            ledger=ledger,
            rate_resolver=rate_resolver,
            volumes=volumes,
            tier_resolver=tier_resolver,
            calculator=FeeCalculator(rate_resolver, tier_resolver),
        )


class CalculateFeeUseCase:
    def __init__(self, context: FeeEngineContext) -> None:
        self._context = context

    def execute(self, transaction_id: str) -> FeeCalculationResult:
        tx = self._context.ledger.find_by_external_id(transaction_id)
        if tx is None:
            raise TransactionNotFound(transaction_id)
        return self._context.calculator.calculate(tx)


class LookupRateUseCase:
    def __init__(self, context: FeeEngineContext) -> None:
        self._context = context

    def execute(self, source: str, target: str, on: date) -> Decimal | None:
        return self._context.rate_resolver.get_rate(source, target, on)


class DebugTierUseCase:
    def __init__(self, context: FeeEngineContext) -> None:
        self._context = context

    def execute(self, client_id: str, on: date) -> TierExplanation:
        client = self._context.clients.find_by_external_id(client_id)
        if client is None:
            raise ClientNotFound(client_id)
        return self._context.tier_resolver.explain(client, on)


class DiscrepancyReportUseCase:
    def __init__(self, context: FeeEngineContext) -> None:
        self._context = context

    def execute(self) -> DiscrepancyReport:
        analyzer = DiscrepancyAnalyzer(self._context.calculator, self._context.volumes)
        return analyzer.analyze(self._context.ledger.list_transactions())
