"""CSV loader producing the in-memory stores.

Reads ``clients.csv``, ``rates.csv`` and ``transactions.csv``. Every row is
validated; invalid rows are logged as errors and usually skipped, questionable rows
are logged as warnings and kept. Re-occurring keys update earlier rows.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Iterator

import pandas as pd

from fee_engine.domain.errors import DataFileError
from fee_engine.domain.models import Client, ExchangeRate, Tier, Transaction
from fee_engine.domain.money import RATE_SCALE, round_half_up
from fee_engine.infrastructure.parsing.utils import (
    clean,
    compute_file_hash,
    ensure_bytes,
    is_currency_code,
    is_money,
    is_positive_decimal,
    is_positive_money,
    parse_date,
    parse_datetime,
)
from fee_engine.infrastructure.repositories.memory import (
    InMemoryClientDirectory,
    InMemoryRateStore,
    InMemoryTransactionStore,
)
from fee_engine.log import get_logger

logger = get_logger(__name__)

CLIENTS_FILE = "clients.csv"
RATES_FILE = "rates.csv"
TRANSACTIONS_FILE = "transactions.csv"

CLIENT_COLUMNS = ("client_id", "name", "registered_at")
RATE_COLUMNS = ("source", "target", "rate", "valid_from")
TRANSACTION_COLUMNS = (
    "transaction_id",
    "client_id",
    "amount",
    "source_currency",
    "target_currency",
    "created_at",
)


@dataclass(slots=True)
class ImportStats:
    processed: int = 0
    created: int = 0
    updated: int = 0
    warnings: int = 0
    errors: int = 0
    file_hash: str = ""

    def record(self, created: bool) -> None:
        if created:
            self.created += 1
        else:
            self.updated += 1


@dataclass(slots=True)
class LoadedData:
    clients: InMemoryClientDirectory
    rates: InMemoryRateStore
    transactions: InMemoryTransactionStore
    stats: dict[str, ImportStats] = field(default_factory=dict)


def read_csv_frame(source: BytesIO | Path | bytes, required: tuple[str, ...], name: str) -> pd.DataFrame:
    raw = ensure_bytes(source)
    try:
        frame = pd.read_csv(BytesIO(raw), dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise DataFileError(f"{name} is empty") from exc
    frame.columns = [str(col).strip() for col in frame.columns]
    missing = [col for col in required if col not in frame.columns]
    if missing:
        raise DataFileError(f"{name} is missing columns: {', '.join(missing)}")
    return frame


def _iter_rows(frame: pd.DataFrame) -> Iterator[tuple[int, dict[str, str]]]:
    for idx, row in enumerate(frame.to_dict(orient="records")):
        # header is line 1
        yield idx + 2, {key: clean(value) for key, value in row.items()}


class CsvDataLoader:
    def __init__(self) -> None:
        self._next_client_id = 1
        self._next_transaction_id = 1

    def load_directory(self, path: Path) -> LoadedData:
        base = Path(path)
        files = {name: base / name for name in (CLIENTS_FILE, RATES_FILE, TRANSACTIONS_FILE)}
        for file in files.values():
            if not file.is_file():
                raise DataFileError(f"Missing file: {file}")
        return self.load(files[CLIENTS_FILE], files[RATES_FILE], files[TRANSACTIONS_FILE])

    def load(
        self,
        clients_source: BytesIO | Path | bytes,
        rates_source: BytesIO | Path | bytes,
        transactions_source: BytesIO | Path | bytes,
    ) -> LoadedData:
        data = LoadedData(
            clients=InMemoryClientDirectory(),
            rates=InMemoryRateStore(),
            transactions=InMemoryTransactionStore(),
        )
        data.stats["clients"] = self._load_clients(clients_source, data.clients)
        data.stats["rates"] = self._load_rates(rates_source, data.rates)
        data.stats["transactions"] = self._load_transactions(
            transactions_source, data.clients, data.transactions
        )
        return data

    def _load_clients(self, source: BytesIO | Path | bytes, directory: InMemoryClientDirectory) -> ImportStats:
        raw = ensure_bytes(source)
        stats = ImportStats(file_hash=compute_file_hash(raw))
        frame = read_csv_frame(raw, CLIENT_COLUMNS, CLIENTS_FILE)

        for line, row in _iter_rows(frame):
            stats.processed += 1
            client_id = row.get("client_id", "")
            name = row.get("name", "")
            registered_raw = row.get("registered_at", "")
            locked_raw = row.get("tier_locked", "")
            locked_value_raw = row.get("tier_locked_value", "")
            row_key = f"clients client_id={client_id}"

            if not client_id or not name or not registered_raw:
                self._error(stats, CLIENTS_FILE, line, row_key, "missing required fields")
                continue

            registered_at = parse_date(registered_raw)
            if registered_at is None:
                self._error(stats, CLIENTS_FILE, line, row_key, f"invalid registered_at={registered_raw}")
                continue

            tier_locked = locked_raw not in ("", "0")
            locked_value = locked_value_raw.upper() or None
            if tier_locked and locked_value is None:
                self._warn(stats, CLIENTS_FILE, line, row_key, "tier_locked=1 but tier_locked_value empty")
            if locked_value is not None and Tier.parse(locked_value) is None:
                self._error(stats, CLIENTS_FILE, line, row_key, f"invalid tier_locked_value={locked_value}")
                locked_value = None

            existing = directory.find_by_external_id(client_id)
            client = Client(
                id=existing.id if existing is not None else self._allocate_client_id(),
                external_id=client_id,
                name=name,
                registered_at=registered_at,
                tier_locked=True if tier_locked else None,
                tier_locked_value=locked_value,
            )
            stats.record(directory.upsert(client))
        return stats

    def _load_rates(self, source: BytesIO | Path | bytes, store: InMemoryRateStore) -> ImportStats:
        raw = ensure_bytes(source)
        stats = ImportStats(file_hash=compute_file_hash(raw))
        frame = read_csv_frame(raw, RATE_COLUMNS, RATES_FILE)

        for line, row in _iter_rows(frame):
            stats.processed += 1
            src = row.get("source", "").upper()
            tgt = row.get("target", "").upper()
            rate_raw = row.get("rate", "")
            valid_from_raw = row.get("valid_from", "")
            row_key = f"rates {src}/{tgt} valid_from={valid_from_raw}"

            if not src or not tgt or not rate_raw or not valid_from_raw:
                self._error(stats, RATES_FILE, line, row_key, "missing required fields")
                continue
            if not is_currency_code(src) or not is_currency_code(tgt):
                self._error(stats, RATES_FILE, line, row_key, f"invalid currency code(s) source={src} target={tgt}")
                continue
            valid_from = parse_date(valid_from_raw)
            if valid_from is None:
                self._error(stats, RATES_FILE, line, row_key, f"invalid valid_from={valid_from_raw}")
                continue
            if not is_positive_decimal(rate_raw):
                self._error(stats, RATES_FILE, line, row_key, f"invalid rate={rate_raw}")
                continue

            value = round_half_up(rate_raw, RATE_SCALE)
            if value <= 0:
                self._error(stats, RATES_FILE, line, row_key, f"rate below 8-digit precision rate={rate_raw}")
                continue
            if value != Decimal(rate_raw):
                self._warn(stats, RATES_FILE, line, row_key, f"rate rounded to 8 digits rate={rate_raw} stored={value}")

            rate = ExchangeRate(
                source_currency=src,
                target_currency=tgt,
                valid_from=valid_from,
                rate=value,
            )
            stats.record(store.upsert(rate))
        return stats

    def _load_transactions(
        self,
        source: BytesIO | Path | bytes,
        directory: InMemoryClientDirectory,
        store: InMemoryTransactionStore,
    ) -> ImportStats:
        raw = ensure_bytes(source)
        stats = ImportStats(file_hash=compute_file_hash(raw))
        frame = read_csv_frame(raw, TRANSACTION_COLUMNS, TRANSACTIONS_FILE)

        for line, row in _iter_rows(frame):
            stats.processed += 1
            tx_id = row.get("transaction_id", "")
            client_id = row.get("client_id", "")
            amount_raw = row.get("amount", "")
            src = row.get("source_currency", "").upper()
            tgt = row.get("target_currency", "").upper()
            created_raw = row.get("created_at", "")
            refunded_raw = row.get("refunded_at", "")
            fee_raw = row.get("original_fee", "")
            final_raw = row.get("original_final_amount", "")
            row_key = f"tx {tx_id} client_id={client_id}"

            if not all((tx_id, client_id, amount_raw, src, tgt, created_raw)):
                self._error(stats, TRANSACTIONS_FILE, line, row_key, "missing required fields")
                continue
            if not is_currency_code(src) or not is_currency_code(tgt):
                # kept: the rate lookup will fail loudly for this row
                self._error(stats, TRANSACTIONS_FILE, line, row_key, f"invalid currency code(s) source={src} target={tgt}")
            if not is_positive_money(amount_raw):
                self._error(stats, TRANSACTIONS_FILE, line, row_key, f"invalid amount={amount_raw}")
                continue
            created_at = parse_datetime(created_raw)
            if created_at is None:
                self._error(stats, TRANSACTIONS_FILE, line, row_key, f"invalid created_at={created_raw}")
                continue

            refunded_at = None
            if refunded_raw:
                refunded_at = parse_datetime(refunded_raw)
                if refunded_at is None:
                    self._error(stats, TRANSACTIONS_FILE, line, row_key, f"invalid refunded_at={refunded_raw}")
            if refunded_at is not None and refunded_at < created_at:
                self._warn(stats, TRANSACTIONS_FILE, line, row_key, "refunded_at < created_at")

            original_fee = self._optional_money(stats, line, row_key, "original_fee", fee_raw)
            original_final = self._optional_money(stats, line, row_key, "original_final_amount", final_raw)

            client = directory.find_by_external_id(client_id)
            if client is None:
                self._warn(stats, TRANSACTIONS_FILE, line, row_key, f"missing client reference client_id={client_id}")

            existing = store.find_by_external_id(tx_id)
            tx = Transaction(
                id=existing.id if existing is not None else self._allocate_transaction_id(),
                external_id=tx_id,
                client_external_id=client_id,
                client=client,
                amount=Decimal(amount_raw),
                source_currency=src,
                target_currency=tgt,
                created_at=created_at,
                refunded_at=refunded_at,
                original_fee=original_fee,
                original_final_amount=original_final,
            )
            stats.record(store.upsert(tx))
        return stats

    def _optional_money(self, stats: ImportStats, line: int, row_key: str, column: str, raw: str) -> Decimal | None:
        if not raw:
            return None
        if not is_money(raw):
            self._warn(stats, TRANSACTIONS_FILE, line, row_key, f"{column} invalid={raw}")
            return None
        return Decimal(raw)

    def _allocate_client_id(self) -> int:
        allocated = self._next_client_id
        self._next_client_id += 1
        return allocated

    def _allocate_transaction_id(self) -> int:
        allocated = self._next_transaction_id
        self._next_transaction_id += 1
        return allocated

    @staticmethod
    def _warn(stats: ImportStats, file: str, line: int, row_key: str, reason: str) -> None:
        stats.warnings += 1
        logger.warning("csv_row_warning", file=file, line=line, row_key=row_key, reason=reason)

    @staticmethod
    def _error(stats: ImportStats, file: str, line: int, row_key: str, reason: str) -> None:
        stats.errors += 1
        logger.error("csv_row_error", file=file, line=line, row_key=row_key, reason=reason)
