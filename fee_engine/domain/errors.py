"""Exceptions raised by the fee engine."""
from __future__ import annotations

from datetime import date


class FeeEngineError(Exception):
    """Base class for failures surfaced to fee engine callers."""


class RateNotFound(FeeEngineError, LookupError):
    """No direct, inverse or pivot rate exists for the pair on that date."""

    def __init__(self, source: str, target: str, on: date) -> None:
        super().__init__(f"Rate not found for {source} -> {target} at {on.isoformat()}")
        self.source = source
        self.target = target
        self.on = on


class DataFileError(FeeEngineError):
    """A required data file is missing or lacks required columns."""


class TransactionNotFound(FeeEngineError, LookupError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class ClientNotFound(FeeEngineError, LookupError):
    def __init__(self, client_id: str) -> None:
        super().__init__(f"Client not found: {client_id}")
        self.client_id = client_id
