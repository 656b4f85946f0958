"""
Target Price Calculator

Deterministic target / stop-loss math. No LLM involvement.

Targets scale with volatility; the stop-loss distance does not.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from tradeplan.core.config import HorizonTargets, StrategyConfig
from tradeplan.schemas.market import InvestmentHorizon, VolatilityLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetPrices:
    target1: float
    target2: float
    stop_loss: float


def classify_volatility(
    band_width: Optional[float],
    high: float = 0.15,
    medium: float = 0.10,
) -> VolatilityLevel:
    """Volatility level from relative Bollinger band width. Unknown width is MEDIUM."""
    if not band_width:
        return VolatilityLevel.MEDIUM
    if band_width > high:
        return VolatilityLevel.HIGH
    if band_width > medium:
        return VolatilityLevel.MEDIUM
    return VolatilityLevel.LOW


class TargetPriceCalculator:
    """Computes target and stop-loss prices from configured percentages."""

    def __init__(self, config: StrategyConfig):
        self._config = config

    def horizon_config(
        self, horizon: InvestmentHorizon, symbol_code: Optional[str] = None
    ) -> HorizonTargets:
        """
        Base config for the horizon with any per-symbol override merged in.

        Override fields replace base fields one by one. A missing override
        volatility_multiplier keeps the whole base multiplier map.
        """
        base = self._config.targets[horizon]
        if not symbol_code:
            return base

        override = self._config.symbol_overrides.get(symbol_code, {}).get(horizon)
        if override is None:
            return base

        return base.model_copy(update={k: v for k, v in override if v is not None})

    def calculate(
        self,
        horizon: InvestmentHorizon,
        entry_price: float,
        volatility: VolatilityLevel = VolatilityLevel.MEDIUM,
        symbol_code: Optional[str] = None,
    ) -> TargetPrices:
        cfg = self.horizon_config(horizon, symbol_code)
        multiplier = cfg.volatility_multiplier.for_level(volatility)

        target1_percent = cfg.target1_percent * multiplier
        target2_percent = cfg.target2_percent * multiplier

        prices = TargetPrices(
            target1=entry_price * (1 + target1_percent / 100),
            target2=entry_price * (1 + target2_percent / 100),
            stop_loss=entry_price * (1 - abs(cfg.stop_loss_percent) / 100),
        )
        logger.debug(
            f"Targets for {symbol_code or '-'} {horizon.value}/{volatility.value}: "
            f"{prices.target1:.0f} / {prices.target2:.0f}, stop {prices.stop_loss:.0f}"
        )
        return prices

    def report_validity_hours(
        self, horizon: InvestmentHorizon, volatility: VolatilityLevel
    ) -> float:
        """How long a generated report stays valid, in hours."""
        validity = self._config.validity
        return validity.base_hours[horizon] * validity.volatility_adjustment[volatility]
