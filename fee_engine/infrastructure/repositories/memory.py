"""In-memory stores backing the CLI, the Streamlit app and the tests."""
from __future__ import annotations

from bisect import bisect_right
from datetime import date, datetime
from typing import Iterable, Sequence

from fee_engine.domain.models import Client, ExchangeRate, Transaction, VolumeRow
from fee_engine.domain.repositories import (
    ClientDirectory,
    RateStore,
    TransactionLedger,
    TransactionStore,
)


class InMemoryRateStore(RateStore):
    def __init__(self, rates: Iterable[ExchangeRate] = ()) -> None:
        self._by_pair: dict[tuple[str, str], list[ExchangeRate]] = {}
        for rate in rates:
            self.upsert(rate)

    def upsert(self, rate: ExchangeRate) -> bool:
        """Store ``rate``; returns False when it replaced one with the same ``valid_from``."""
        pair = (rate.source_currency.upper(), rate.target_currency.upper())
        history = self._by_pair.setdefault(pair, [])
        for idx, existing in enumerate(history):
            if existing.valid_from == rate.valid_from:
                history[idx] = rate
                return False
        history.append(rate)
        history.sort(key=lambda item: item.valid_from)
        return True

    def find_applicable_rate(self, source: str, target: str, on: date) -> ExchangeRate | None:
        history = self._by_pair.get((source.upper(), target.upper()))
        if not history:
            return None
        idx = bisect_right([item.valid_from for item in history], on)
        if idx == 0:
            return None
        return history[idx - 1]

    def __len__(self) -> int:
        return sum(len(history) for history in self._by_pair.values())


class InMemoryClientDirectory(ClientDirectory):
    def __init__(self, clients: Iterable[Client] = ()) -> None:
        self._clients: dict[str, Client] = {}
        for client in clients:
            self.upsert(client)

    def upsert(self, client: Client) -> bool:
        created = client.external_id not in self._clients
        self._clients[client.external_id] = client
        return created

    def find_by_external_id(self, external_id: str) -> Client | None:
        return self._clients.get(external_id.strip())


class InMemoryTransactionStore(TransactionStore, TransactionLedger):
    def __init__(self, transactions: Iterable[Transaction] = ()) -> None:
        self._transactions: dict[str, Transaction] = {}
        for tx in transactions:
            self.upsert(tx)

    def upsert(self, tx: Transaction) -> bool:
        created = tx.external_id not in self._transactions
        self._transactions[tx.external_id] = tx
        return created

    def find_by_external_id(self, external_id: str) -> Transaction | None:
        return self._transactions.get(external_id.strip())

    def list_transactions(self) -> Sequence[Transaction]:
        return list(self._transactions.values())

    def range_for_client(self, client_id: int, start: datetime, end: datetime) -> Sequence[VolumeRow]:
        return [
            VolumeRow(
                amount=tx.amount,
                source_currency=tx.source_currency,
                created_at=tx.created_at,
                refunded_at=tx.refunded_at,
            )
            for tx in self._transactions.values()
            if tx.client is not None and tx.client.id == client_id and start <= tx.created_at < end
        ]

    def __len__(self) -> int:
        return len(self._transactions)
