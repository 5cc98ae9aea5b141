import csv
import io
from datetime import date, datetime
from decimal import Decimal

from fee_engine.application.use_cases import DiscrepancyReportUseCase, FeeEngineContext
from fee_engine.domain.discrepancies import DiscrepancyKind, implied_fee_rate
from fee_engine.domain.models import Client, ExchangeRate, Transaction
from fee_engine.infrastructure.repositories.memory import (
    InMemoryClientDirectory,
    InMemoryRateStore,
    InMemoryTransactionStore,
)
from fee_engine.presentation.diff_report import COLUMNS, render_csv, render_html, render_text

CLIENT = Client(id=1, external_id="C001", name="Acme")


def make_transaction(tx_id: str, fee: str | None, final: str | None, target: str = "USD") -> Transaction:
    return Transaction(
        id=int(tx_id[1:]),
        external_id=tx_id,
        client_external_id=CLIENT.external_id,
        client=CLIENT,
        amount=Decimal("100.00"),
        source_currency="EUR",
        target_currency=target,
        created_at=datetime(2024, 1, 10, 12, 0, 0),
        original_fee=None if fee is None else Decimal(fee),
        original_final_amount=None if final is None else Decimal(final),
    )


def run_report(*transactions: Transaction):
    store = InMemoryTransactionStore(transactions)
    context = FeeEngineContext.build(
        clients=InMemoryClientDirectory([CLIENT]),
        rates=InMemoryRateStore([ExchangeRate("EUR", "USD", date(2024, 1, 1), Decimal("1.0850"))]),
        transactions=store,
        ledger=store,
    )
    return DiscrepancyReportUseCase(context).execute()


def test_matching_transactions_are_not_reported():
    # BRONZE: 108.50 * 0.0275
    report = run_report(make_transaction("T001", "2.98", "105.52"), make_transaction("T002", None, None))

    assert not report.has_issues()
    assert report.summary.total_transactions == 2
    assert report.summary.compared == 1
    assert report.summary.matched == 1
    assert render_text(report) == ""
    assert render_html(report) == "<p>No discrepancies detected.</p>"


def test_each_gap_is_classified():
    report = run_report(
        make_transaction("T001", "2.99", "105.51"),
        make_transaction("T002", "3.00", "110.00"),
        make_transaction("T003", "5.43", "103.07"),
        make_transaction("T004", "2.44", "106.06"),
        make_transaction("T005", "1.90", "106.60"),
        make_transaction("T006", "1.00", "99.00", target="JPY"),
    )
    kinds = {item.transaction_id: item.kind for item in report.iter_all_discrepancies()}

    assert kinds == {
        "T001": DiscrepancyKind.ROUNDING,
        "T002": DiscrepancyKind.RATE_OR_CONVERTED,
        "T003": DiscrepancyKind.ANOMALY_FEE_RATE,
        "T004": DiscrepancyKind.TIER_OR_RULES,
        "T005": DiscrepancyKind.MISSING_HISTORY_FOR_GRACE,
        "T006": DiscrepancyKind.ERROR,
    }
    assert report.summary.matched == 0
    assert report.summary.by_kind[DiscrepancyKind.ROUNDING] == 1
    assert report.summary.by_kind[DiscrepancyKind.ERROR] == 1


def test_implied_fee_rate():
    assert implied_fee_rate(Decimal("2.44"), Decimal("108.50")) == Decimal("0.022488")
    assert implied_fee_rate(Decimal("0.00"), Decimal("0.00")) == Decimal("0")


def test_text_report_lists_each_discrepancy():
    report = run_report(
        make_transaction("T001", "2.44", "106.06"),
        make_transaction("T002", "1.00", "99.00", target="JPY"),
    )
    lines = render_text(report).splitlines()

    assert lines[0] == "Discrepancies found: 2"
    assert "T001:" in lines
    assert "  Type: TIER_OR_RULES | Tier: BRONZE" in lines
    assert "  Original fee: 2.44 | Calculated fee: 2.98" in lines
    assert "  Error: Rate not found for EUR -> JPY at 2024-01-10" in lines


def test_csv_and_html_exports():
    report = run_report(make_transaction("T001", "1.00", "99.00", target="JPY"))
    discrepancies = tuple(report.iter_all_discrepancies())

    rows = list(csv.DictReader(io.StringIO(render_csv(discrepancies).decode("utf-8"))))
    assert rows[0]["transaction_id"] == "T001"
    assert rows[0]["classification"] == "ERROR"
    assert rows[0]["calculated_fee"] == ""

    header = render_csv(()).decode("utf-8").splitlines()[0]
    assert header.split(",") == list(COLUMNS)

    html = render_html(report)
    assert "<td>T001</td>" in html
    assert "EUR -&gt; JPY" in html
