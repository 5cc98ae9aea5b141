"""Central configuration for the fee engine package."""
from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Context, Decimal
from pathlib import Path

# Legacy fee schedule; values are fixed rationals, never derived from volume.
FEE_RATES = {
    "BRONZE": Decimal("0.0275"),
    "SILVER": Decimal("0.0225"),
    "GOLD": Decimal("0.0175"),
}

PIVOT_CURRENCIES = ("EUR", "USD", "CHF")

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("FEE_ENGINE_DATA_DIR", str(BASE_DIR / "data")))


@dataclass(slots=True, frozen=True)
class Settings:
    decimal_context: Context
    volume_currency: str
    silver_threshold_eur: Decimal
    gold_threshold_eur: Decimal
    fee_rates: dict[str, Decimal]
    pivot_currencies: tuple[str, ...]
    grace_last_day: int
    refund_window_hours: int
    floor_currency: str
    data_dir: Path


SETTINGS = Settings(
    decimal_context=Context(prec=28),
    volume_currency="EUR",
    silver_threshold_eur=Decimal("10000"),
    gold_threshold_eur=Decimal("50000"),
    fee_rates=dict(FEE_RATES),
    pivot_currencies=PIVOT_CURRENCIES,
    grace_last_day=15,
    refund_window_hours=72,
    floor_currency="CHF",
    data_dir=DATA_DIR,
)
