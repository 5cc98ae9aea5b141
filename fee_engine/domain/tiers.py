"""Tier classification and the grace-period carry-over."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from fee_engine.config import SETTINGS
from fee_engine.log import get_logger

from .models import Client, Tier
from .months import as_date, first_day_of_previous_month
from .volume import MonthlyVolumeSource

logger = get_logger(__name__)


def classify(volume_eur: Decimal) -> Tier:
    """Inclusive upper bounds: <= 10 000 BRONZE, <= 50 000 SILVER, above GOLD."""
    if volume_eur <= SETTINGS.silver_threshold_eur:
        return Tier.BRONZE
    if volume_eur <= SETTINGS.gold_threshold_eur:
        return Tier.SILVER
    return Tier.GOLD


def apply_grace(current: Tier, previous: Tier) -> Tier:
    """Lift SILVER back to GOLD after a GOLD month; never skips or demotes."""
    if previous is Tier.GOLD and current is Tier.SILVER:
        return Tier.GOLD
    return current


@dataclass(frozen=True)
class TierExplanation:
    client_name: str
    client_id: str
    on: date
    locked_value: str | None
    current_volume_eur: Decimal
    current_tier: Tier
    previous_month: date
    previous_has_history: bool
    previous_volume_eur: Decimal
    previous_tier: Tier
    resolved_tier: Tier


class TierResolver:
    def __init__(self, volume_source: MonthlyVolumeSource) -> None:
        self._volumes = volume_source

    def resolve_tier(self, client: Client, on: date | datetime) -> Tier:
        if client.tier_locked is True:
            return self._locked_tier(client)

        current = classify(self._volumes.monthly_volume_eur(client, on))
        if as_date(on).day > SETTINGS.grace_last_day:
            return current

        previous_month = first_day_of_previous_month(on)
        if not self._volumes.has_history(client, previous_month):
            return current

        previous = classify(self._volumes.monthly_volume_eur(client, previous_month))
        return apply_grace(current, previous)

    def explain(self, client: Client, on: date | datetime) -> TierExplanation:
        """Volumes and raw tiers behind ``resolve_tier`` for operator debugging."""
        previous_month = first_day_of_previous_month(on)
        current_volume = self._volumes.monthly_volume_eur(client, on)
        previous_volume = self._volumes.monthly_volume_eur(client, previous_month)
        locked_value = None
        if client.tier_locked is True:
            locked_value = client.tier_locked_value or "true"
        return TierExplanation(
            client_name=client.name,
            client_id=client.external_id,
            on=as_date(on),
            locked_value=locked_value,
            current_volume_eur=current_volume,
            current_tier=classify(current_volume),
            previous_month=previous_month.date(),
            previous_has_history=self._volumes.has_history(client, previous_month),
            previous_volume_eur=previous_volume,
            previous_tier=classify(previous_volume),
            resolved_tier=self.resolve_tier(client, on),
        )

    @staticmethod
    def _locked_tier(client: Client) -> Tier:
        tier = Tier.parse(client.tier_locked_value)
        if tier is None:
            # TODO: surface as a data error once ops confirm no locked client relies on this.
            logger.warning(
                "invalid_locked_tier_value",
                client_id=client.external_id,
                tier_locked_value=client.tier_locked_value,
                fallback=Tier.BRONZE.value,
            )
            return Tier.BRONZE
        return tier
