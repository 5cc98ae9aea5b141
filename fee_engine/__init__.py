"""Currency conversion fee engine with tiered, volume-based pricing."""
from fee_engine.application.use_cases import FeeEngineContext
from fee_engine.domain.errors import RateNotFound
from fee_engine.domain.fees import FeeCalculator
from fee_engine.domain.models import FeeCalculationResult, Tier
from fee_engine.domain.rates import RateResolver
from fee_engine.domain.tiers import TierResolver
from fee_engine.domain.volume import MonthlyVolumeAggregator

__all__ = [
    "FeeEngineContext",
    "FeeCalculator",
    "FeeCalculationResult",
    "MonthlyVolumeAggregator",
    "RateNotFound",
    "RateResolver",
    "Tier",
    "TierResolver",
]
