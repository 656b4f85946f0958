"""
Confidence Scorer

Weighted signal-confidence model for a generated report. Pure, no I/O.

    score = base
          + historical accuracy (+ sample-size bonus)
          + data quality
          + indicator agreement
          + volume
          - volatility penalty
    clamped to [bounds.min, bounds.max]

Market condition (volatile / stable / normal) swaps in condition-specific
weights before scoring.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from tradeplan.core.config import ConfidenceConfig, ConfidenceWeights
from tradeplan.schemas.market import IndicatorSnapshot
from tradeplan.schemas.strategy import HistoricalContext


class MarketCondition(str, Enum):
    VOLATILE = "volatile"
    STABLE = "stable"
    NORMAL = "normal"


def get_market_condition(
    band_width: float, recent_band_width: Optional[float] = None
) -> MarketCondition:
    """Classify the market from current and recent relative band width."""
    if band_width > 0.15:
        return MarketCondition.VOLATILE
    if recent_band_width and recent_band_width > band_width * 1.5:
        return MarketCondition.VOLATILE
    if band_width < 0.05:
        return MarketCondition.STABLE
    return MarketCondition.NORMAL


@dataclass
class ConfidenceScore:
    """Final score plus the named contributions that produced it."""

    score: float
    raw_score: float
    market_condition: MarketCondition
    breakdown: dict[str, float] = field(default_factory=dict)


class ConfidenceScorer:
    """Scores how much a report's signals can be trusted."""

    def __init__(self, config: ConfidenceConfig):
        self._config = config

    def adjusted_weights(self, condition: MarketCondition) -> ConfidenceWeights:
        """Base weights with the market-condition overrides applied."""
        weights = self._config.weights
        if condition == MarketCondition.VOLATILE:
            adj = self._config.volatile
            return weights.model_copy(
                update={
                    "historical_accuracy": adj.historical_accuracy,
                    "volatility": weights.volatility.model_copy(update={"high": adj.volatility}),
                }
            )
        if condition == MarketCondition.STABLE:
            adj = self._config.stable
            return weights.model_copy(
                update={
                    "historical_accuracy": adj.historical_accuracy,
                    "volatility": weights.volatility.model_copy(update={"medium": adj.volatility}),
                }
            )
        return weights

    def score(
        self,
        indicator: Optional[IndicatorSnapshot],
        close: float,
        candles_analyzed: int,
        historical: Optional[HistoricalContext] = None,
        recent_band_width: Optional[float] = None,
    ) -> ConfidenceScore:
        cfg = self._config
        th = cfg.thresholds
        indicator = indicator or IndicatorSnapshot()

        band_width = indicator.band_width(close)
        condition = (
            get_market_condition(band_width, recent_band_width)
            if band_width is not None
            else MarketCondition.NORMAL
        )
        w = self.adjusted_weights(condition)

        breakdown: dict[str, float] = {"base": cfg.base}

        # 1. Historical accuracy
        if historical is not None and historical.total_cases >= th.min_historical_cases:
            breakdown["historical_accuracy"] = historical.success_rate / 100 * w.historical_accuracy
            if historical.total_cases >= th.sample_size_bonus:
                breakdown["sample_size_bonus"] = w.sample_size_bonus

        # 2. Data quality
        if candles_analyzed >= th.high_data_candles:
            breakdown["data_quality"] = w.data_quality.high
        elif candles_analyzed >= th.medium_data_candles:
            breakdown["data_quality"] = w.data_quality.medium

        # 3. Indicator agreement
        signals = 0
        agreement = 0
        if indicator.rsi is not None:
            signals += 1
            if indicator.rsi > th.rsi_overbought or indicator.rsi < th.rsi_oversold:
                agreement += 1
        if indicator.macd is not None and indicator.macd_signal is not None:
            signals += 1
            if abs(indicator.macd - indicator.macd_signal) > th.macd_significant:
                agreement += 1
        if indicator.ma5 is not None and indicator.ma20 is not None and indicator.ma60 is not None:
            signals += 1
            ma5, ma20, ma60 = indicator.ma5, indicator.ma20, indicator.ma60
            if ma5 > ma20 > ma60 or ma5 < ma20 < ma60:
                agreement += 1
        if signals > 0:
            breakdown["indicator_agreement"] = agreement / signals * w.indicator_agreement

        # 4. Volume
        if indicator.volume_ratio is not None:
            if indicator.volume_ratio > th.volume_surge:
                breakdown["volume"] = w.volume.surge
            elif indicator.volume_ratio > th.volume_increase:
                breakdown["volume"] = w.volume.increase

        # 5. Volatility penalty
        if band_width is not None:
            if band_width > th.volatility_high:
                breakdown["volatility"] = -w.volatility.high
            elif band_width > th.volatility_medium:
                breakdown["volatility"] = -w.volatility.medium

        raw = sum(breakdown.values())
        clamped = min(cfg.bounds.max, max(cfg.bounds.min, raw))

        return ConfidenceScore(
            score=round(clamped, 4),
            raw_score=round(raw, 4),
            market_condition=condition,
            breakdown={k: round(v, 4) for k, v in breakdown.items()},
        )
