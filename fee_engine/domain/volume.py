"""Monthly EUR volume per client, the input to tier classification."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Protocol, Sequence

from fee_engine.config import SETTINGS
from fee_engine.log import get_logger

from .models import Client, VolumeRow
from .money import ZERO_MONEY, add_money, mul_round, normalize_money
from .months import month_key, month_window, parse_timestamp
from .rates import RateResolver
from .repositories import TransactionStore

logger = get_logger(__name__)


class MonthlyVolumeSource(Protocol):
    def monthly_volume_eur(self, client: Client, any_day: date | datetime) -> Decimal:
        ...

    def has_history(self, client: Client, any_day: date | datetime) -> bool:
        ...


@dataclass(slots=True)
class VolumeCache:
    """Per-run cache keyed by ``(client id, "YYYY-MM")``; no invalidation."""

    volumes: dict[tuple[int, str], Decimal] = field(default_factory=dict)
    history: dict[tuple[int, str], bool] = field(default_factory=dict)


class MonthlyVolumeAggregator:
    """Sums a client's qualifying transactions for one calendar month in EUR.

    A transaction qualifies unless it was refunded within the refund window
    (72 hours) of its creation. Rows that cannot be converted, or whose
    timestamp is unreadable, are left out of the sum but still prove that the
    month has history.

    Results are cached for the lifetime of the instance. Build a new instance
    per run when the underlying data may change, and one per worker thread.
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        rate_resolver: RateResolver,
        cache: VolumeCache | None = None,
    ) -> None:
        self._transactions = transaction_store
        self._rates = rate_resolver
        self._cache = cache if cache is not None else VolumeCache()
        self._currency = SETTINGS.volume_currency
        self._refund_window = timedelta(hours=SETTINGS.refund_window_hours)

    @property
    def cache(self) -> VolumeCache:
        return self._cache

    def monthly_volume_eur(self, client: Client, any_day: date | datetime) -> Decimal:
        key = (client.id, month_key(any_day))
        cached = self._cache.volumes.get(key)
        if cached is not None:
            return cached

        rows = self._qualifying_rows(client, any_day)
        self._cache.history[key] = bool(rows)

        total = ZERO_MONEY
        for row in rows:
            converted = self._to_volume_currency(client, row)
            if converted is not None:
                total = add_money(total, converted)

        self._cache.volumes[key] = total
        return total

    def has_history(self, client: Client, any_day: date | datetime) -> bool:
        key = (client.id, month_key(any_day))
        if key in self._cache.history:
            return self._cache.history[key]
        self._cache.history[key] = bool(self._qualifying_rows(client, any_day))
        return self._cache.history[key]

    def _qualifying_rows(self, client: Client, any_day: date | datetime) -> Sequence[VolumeRow]:
        start, end = month_window(any_day)
        rows = self._transactions.range_for_client(client.id, start, end)
        return [row for row in rows if self._qualifies(row)]

    def _qualifies(self, row: VolumeRow) -> bool:
        if row.refunded_at is None or row.refunded_at == "":
            return True
        created_at = parse_timestamp(row.created_at)
        refunded_at = parse_timestamp(row.refunded_at)
        if created_at is None or refunded_at is None:
            return True
        return refunded_at > created_at + self._refund_window

    def _to_volume_currency(self, client: Client, row: VolumeRow) -> Decimal | None:
        created_at = parse_timestamp(row.created_at)
        if created_at is None:
            logger.warning(
                "invalid_created_at",
                client_id=client.external_id,
                created_at=str(row.created_at),
            )
            return None

        source = (row.source_currency or "").strip().upper()
        amount = normalize_money(row.amount)
        if source == self._currency:
            return amount

        rate = self._rates.get_rate(source, self._currency, created_at)
        if rate is None:
            logger.warning(
                "fx_conversion_skipped",
                client_id=client.external_id,
                source=source,
                target=self._currency,
                date=created_at.date().isoformat(),
            )
            return None
        return mul_round(amount, rate)
