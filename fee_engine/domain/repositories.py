"""Read-only store interfaces anchoring the domain layer."""
from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, Sequence

from .models import Client, ExchangeRate, Transaction, VolumeRow


class RateStore(Protocol):
    """Latest rate with ``valid_from <= on`` for the exact ordered pair."""

    def find_applicable_rate(self, source: str, target: str, on: date) -> ExchangeRate | None:
        ...


class TransactionStore(Protocol):
    """All of a client's transactions created inside ``[start, end)``, any order."""

    def range_for_client(self, client_id: int, start: datetime, end: datetime) -> Sequence[VolumeRow]:
        ...


class ClientDirectory(Protocol):
    def find_by_external_id(self, external_id: str) -> Client | None:
        ...


class TransactionLedger(Protocol):
    def find_by_external_id(self, external_id: str) -> Transaction | None:
        ...

    def list_transactions(self) -> Sequence[Transaction]:
        ...
