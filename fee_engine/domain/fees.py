"""Fee calculation: rate, conversion, tier, fee and net settlement."""
from __future__ import annotations

from decimal import Decimal

from fee_engine.config import SETTINGS
from fee_engine.log import get_logger

from .errors import RateNotFound
from .models import FeeCalculationResult, Tier, Transaction
from .money import mul_round, normalize_money, round_rate, sub_money
from .rates import RateResolver
from .tiers import TierResolver

logger = get_logger(__name__)

UNKNOWN_CLIENT_NAME = "(unknown client)"


def fee_rate_for(tier: Tier) -> Decimal:
    return SETTINGS.fee_rates[tier.value]


def apply_currency_floor(tier: Tier, source: str, target: str) -> Tier:
    """CHF conversions are never priced at BRONZE."""
    floor_currency = SETTINGS.floor_currency
    if tier is Tier.BRONZE and floor_currency in (source, target):
        return Tier.SILVER
    return tier


class FeeCalculator:
    def __init__(self, rate_resolver: RateResolver, tier_resolver: TierResolver) -> None:
        self._rates = rate_resolver
        self._tiers = tier_resolver

    def calculate(self, tx: Transaction) -> FeeCalculationResult:
        client = tx.client
        source = tx.source_currency.strip().upper()
        target = tx.target_currency.strip().upper()

        rate = self._rates.get_rate(source, target, tx.created_at)
        if rate is None:
            logger.error(
                "fx_rate_missing",
                transaction_id=tx.external_id,
                source=source,
                target=target,
                date=tx.created_at.date().isoformat(),
            )
            raise RateNotFound(source, target, tx.created_at.date())

        # Legacy compatibility: conversions always use a 4-digit rate.
        rate_for_conversion = round_rate(rate)
        amount = normalize_money(tx.amount)
        converted = mul_round(amount, rate_for_conversion)

        if client is not None:
            tier = self._tiers.resolve_tier(client, tx.created_at)
        else:
            tier = Tier.BRONZE
            logger.warning(
                "missing_client_relation",
                transaction_id=tx.external_id,
                client_external_id=tx.client_external_id,
                fallback=tier.value,
            )

        tier = apply_currency_floor(tier, source, target)
        fee_rate = fee_rate_for(tier)
        fee = mul_round(converted, fee_rate)

        return FeeCalculationResult(
            transaction_id=tx.external_id,
            client_name=client.name if client is not None else UNKNOWN_CLIENT_NAME,
            amount=amount,
            source_currency=source,
            target_currency=target,
            rate=rate_for_conversion,
            converted=converted,
            tier=tier,
            fee_rate=fee_rate,
            fee=fee,
            final_amount=sub_money(converted, fee),
        )
