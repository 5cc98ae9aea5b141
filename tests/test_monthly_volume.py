from datetime import date, datetime
from decimal import Decimal

from structlog.testing import capture_logs

from fee_engine.domain.models import Client, ExchangeRate, VolumeRow
from fee_engine.domain.rates import RateResolver
from fee_engine.domain.volume import MonthlyVolumeAggregator
from fee_engine.infrastructure.repositories.memory import InMemoryRateStore

CLIENT = Client(id=1, external_id="C001", name="Acme")


class StubTransactionStore:
    def __init__(self, rows_by_month: dict[str, list[VolumeRow]]) -> None:
        self._rows = rows_by_month
        self.calls = 0

    def range_for_client(self, client_id, start, end):
        self.calls += 1
        return list(self._rows.get(start.strftime("%Y-%m"), []))


def make_row(amount: str, currency: str = "EUR", created_at="2024-01-10 12:00:00", refunded_at=None) -> VolumeRow:
    return VolumeRow(amount=amount, source_currency=currency, created_at=created_at, refunded_at=refunded_at)


def make_aggregator(rows_by_month, *rates: ExchangeRate) -> MonthlyVolumeAggregator:
    store = rows_by_month if isinstance(rows_by_month, StubTransactionStore) else StubTransactionStore(rows_by_month)
    return MonthlyVolumeAggregator(store, RateResolver(InMemoryRateStore(rates)))


def test_empty_month_has_zero_volume_and_no_history():
    aggregator = make_aggregator({})
    assert aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 20)) == Decimal("0.00")
    assert not aggregator.has_history(CLIENT, date(2024, 1, 20))


def test_eur_rows_are_summed_exactly():
    aggregator = make_aggregator({"2024-01": [make_row("10"), make_row("2.50")]})
    volume = aggregator.monthly_volume_eur(CLIENT, datetime(2024, 1, 31, 23, 0))
    assert str(volume) == "12.50"
    assert aggregator.has_history(CLIENT, date(2024, 1, 1))


def test_foreign_rows_are_converted_at_the_day_rate():
    rate = ExchangeRate("USD", "EUR", date(2024, 1, 1), Decimal("0.9219"))
    aggregator = make_aggregator({"2024-01": [make_row("10.00", "USD")]}, rate)
    assert str(aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 15))) == "9.22"


def test_unconvertible_row_is_skipped_but_counts_as_history():
    aggregator = make_aggregator({"2024-01": [make_row("100.00", "USD")]})
    with capture_logs() as logs:
        volume = aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 15))
    assert volume == Decimal("0.00")
    assert aggregator.has_history(CLIENT, date(2024, 1, 15))
    assert [entry["event"] for entry in logs] == ["fx_conversion_skipped"]
    assert logs[0]["log_level"] == "warning"
    assert logs[0]["source"] == "USD"


def test_unparsable_timestamp_is_skipped_but_counts_as_history():
    aggregator = make_aggregator({"2024-01": [make_row("50.00", created_at="INVALID")]})
    with capture_logs() as logs:
        volume = aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 15))
    assert volume == Decimal("0.00")
    assert aggregator.has_history(CLIENT, date(2024, 1, 15))
    assert logs[0]["event"] == "invalid_created_at"


def test_refund_within_window_is_excluded():
    rows = [
        make_row("100.00", created_at="2024-01-05 10:00:00", refunded_at="2024-01-07 10:00:00"),
        make_row("40.00", created_at="2024-01-05 10:00:00", refunded_at="2024-01-08 10:00:00"),
        make_row("25.00", created_at="2024-01-05 10:00:00", refunded_at="2024-01-08 10:00:01"),
        make_row("5.00", created_at="2024-01-05 10:00:00"),
    ]
    aggregator = make_aggregator({"2024-01": rows})
    assert str(aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 20))) == "30.00"


def test_month_with_only_quick_refunds_has_no_history():
    rows = [make_row("100.00", created_at="2024-01-05 10:00:00", refunded_at="2024-01-05 11:00:00")]
    aggregator = make_aggregator({"2024-01": rows})
    assert not aggregator.has_history(CLIENT, date(2024, 1, 20))
    assert aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 20)) == Decimal("0.00")


def test_volume_is_cached_per_client_and_month():
    store = StubTransactionStore({"2024-01": [make_row("10.00")]})
    aggregator = make_aggregator(store)

    first = aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 3))
    second = aggregator.monthly_volume_eur(CLIENT, date(2024, 1, 28))
    assert first == second == Decimal("10.00")
    assert aggregator.has_history(CLIENT, date(2024, 1, 10))
    assert store.calls == 1

    aggregator.monthly_volume_eur(CLIENT, date(2024, 2, 3))
    assert store.calls == 2
    assert (1, "2024-02") in aggregator.cache.volumes


def test_history_lookup_alone_does_not_fill_volume_cache():
    store = StubTransactionStore({"2023-12": [make_row("10.00", created_at="2023-12-01 00:00:00")]})
    aggregator = make_aggregator(store)

    assert aggregator.has_history(CLIENT, date(2023, 12, 15))
    assert aggregator.has_history(CLIENT, date(2023, 12, 31))
    assert store.calls == 1
    assert aggregator.cache.volumes == {}
