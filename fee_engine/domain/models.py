"""Domain models for the fee calculation pipeline.

These dataclasses are the canonical, read-only shapes the core works with;
loaders build them and the services never mutate them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from .money import RATE_SCALE


class Tier(Enum):
    """Client pricing tier, ordered BRONZE < SILVER < GOLD."""

    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank <= other.rank

    @classmethod
    def parse(cls, raw: object) -> Tier | None:
        if raw is None:
            return None
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return None


_TIER_ORDER = (Tier.BRONZE, Tier.SILVER, Tier.GOLD)


@dataclass(frozen=True)
class ExchangeRate:
    source_currency: str
    target_currency: str
    valid_from: date
    rate: Decimal

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError(f"Exchange rate must be positive, got {self.rate}")
        if self.rate.as_tuple().exponent < -RATE_SCALE:
            raise ValueError(f"Exchange rate carries more than {RATE_SCALE} fractional digits: {self.rate}")


@dataclass(frozen=True)
class Client:
    id: int
    external_id: str
    name: str
    registered_at: date | None = None
    tier_locked: bool | None = None
    tier_locked_value: str | None = None


@dataclass(frozen=True)
class Transaction:
    """A single conversion; ``client`` is None when the client id did not resolve."""

    id: int
    external_id: str
    client_external_id: str
    client: Client | None
    amount: Decimal | str
    source_currency: str
    target_currency: str
    created_at: datetime
    refunded_at: datetime | None = None
    original_fee: Decimal | None = None
    original_final_amount: Decimal | None = None


@dataclass(frozen=True)
class VolumeRow:
    """Raw row from a client's monthly range scan.

    Timestamps come straight from storage and may be unparsable text.
    """

    amount: Decimal | str
    source_currency: str
    created_at: datetime | str | None
    refunded_at: datetime | str | None = None


@dataclass(frozen=True)
class FeeCalculationResult:
    transaction_id: str
    client_name: str
    amount: Decimal
    source_currency: str
    target_currency: str
    rate: Decimal
    converted: Decimal
    tier: Tier
    fee_rate: Decimal
    fee: Decimal
    final_amount: Decimal
