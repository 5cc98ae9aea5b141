"""Command-line entrypoint for fee calculation and reporting."""
from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

from fee_engine.application.use_cases import (
    CalculateFeeUseCase,
    DebugTierUseCase,
    DiscrepancyReportUseCase,
    FeeEngineContext,
    LookupRateUseCase,
)
from fee_engine.config import SETTINGS
from fee_engine.domain.errors import FeeEngineError
from fee_engine.infrastructure.parsing.csv_loader import CsvDataLoader, LoadedData
from fee_engine.presentation.diff_report import render_csv, render_text


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="fee-engine", description="Currency conversion fee calculator")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=SETTINGS.data_dir,
        help="Folder containing clients.csv, rates.csv and transactions.csv",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("check-data", help="Load and validate the CSV files, print per-file stats")

    calculate = commands.add_parser("calculate-fee", help="Show fee details for a transaction")
    calculate.add_argument("transaction_id", help="Transaction ID (e.g. T0001)")

    rate = commands.add_parser("test-rate", help="Resolve an exchange rate for a pair and date")
    rate.add_argument("source", help="Source currency (e.g. EUR)")
    rate.add_argument("target", help="Target currency (e.g. USD)")
    rate.add_argument("date", help="Date (YYYY-MM-DD)")

    tier = commands.add_parser("debug-tier", help="Show monthly volumes and tier resolution for a client")
    tier.add_argument("client_id", help="Client external id (e.g. C009)")
    tier.add_argument("date", help="Date (YYYY-MM-DD)")

    report = commands.add_parser("discrepancy-report", help="Compare calculated fees with the reference values")
    report.add_argument("--csv", type=Path, help="Also write the discrepancies to this CSV file")

    return parser.parse_args(argv)


def _parse_day(raw: str) -> date | None:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _context(data: LoadedData) -> FeeEngineContext:
    return FeeEngineContext.build(
        clients=data.clients,
        rates=data.rates,
        transactions=data.transactions,
        ledger=data.transactions,
    )


def _check_data(data: LoadedData) -> int:
    print("Done.")
    for name, stats in data.stats.items():
        print(
            f"{name}: processed={stats.processed} created={stats.created} updated={stats.updated} "
            f"warnings={stats.warnings} errors={stats.errors}"
        )
    return 0


def _calculate_fee(context: FeeEngineContext, transaction_id: str) -> int:
    result = CalculateFeeUseCase(context).execute(transaction_id)
    print(f"Transaction: {result.transaction_id}")
    print(f"Client: {result.client_name}")
    print(f"Amount: {result.amount} {result.source_currency} → {result.target_currency}")
    print(f"Rate: {result.rate}")
    print(f"Converted: {result.converted}")
    print(f"Tier: {result.tier.value}")
    print(f"Fee: {result.fee}")
    print(f"Final: {result.final_amount}")
    return 0


def _test_rate(context: FeeEngineContext, source: str, target: str, raw_day: str) -> int:
    on = _parse_day(raw_day)
    if on is None:
        print("Invalid date format, expected YYYY-MM-DD", file=sys.stderr)
        return 1
    rate = LookupRateUseCase(context).execute(source, target, on)
    if rate is None:
        print(f"Rate not found for {source} → {target} at {raw_day}")
        return 0
    print(f"Rate {source} → {target} at {raw_day}: {rate}")
    return 0


def _debug_tier(context: FeeEngineContext, client_id: str, raw_day: str) -> int:
    on = _parse_day(raw_day)
    if on is None:
        print("Invalid date format, expected YYYY-MM-DD", file=sys.stderr)
        return 1
    info = DebugTierUseCase(context).execute(client_id, on)
    print(f"Client: {info.client_name} ({info.client_id})")
    print(f"Date: {info.on.isoformat()}")
    print(f"Locked tier: {info.locked_value or 'no'}")
    print()
    print(f"Current month volume (EUR): {info.current_volume_eur} => tier by volume: {info.current_tier.value}")
    print(f"Prev month volume (EUR): {info.previous_volume_eur} => tier by volume: {info.previous_tier.value}")
    print(f"Prev month has history: {'yes' if info.previous_has_history else 'no'}")
    print()
    print(f"Resolved tier (with grace): {info.resolved_tier.value}")
    return 0


def _discrepancy_report(context: FeeEngineContext, csv_path: Path | None) -> int:
    report = DiscrepancyReportUseCase(context).execute()
    text = render_text(report)
    if text:
        print(text)
    if csv_path is not None:
        csv_path.write_bytes(render_csv(tuple(report.iter_all_discrepancies())))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        data = CsvDataLoader().load_directory(args.data_dir)
        if args.command == "check-data":
            return _check_data(data)

        context = _context(data)
        if args.command == "calculate-fee":
            return _calculate_fee(context, args.transaction_id)
        if args.command == "test-rate":
            return _test_rate(context, args.source, args.target, args.date)
        if args.command == "debug-tier":
            return _debug_tier(context, args.client_id, args.date)
        return _discrepancy_report(context, args.csv)
    except FeeEngineError as exc:
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
