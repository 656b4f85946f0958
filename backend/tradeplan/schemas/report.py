"""
Strategy Report Contracts

Input:  StrategyRequest (market snapshot from the caller)
Output: StrategyReport (strategy + signal confidence + validity window)
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tradeplan.schemas.market import (
    Candle,
    IndicatorSnapshot,
    InvestmentHorizon,
    Symbol,
    VolatilityLevel,
)
from tradeplan.schemas.strategy import HistoricalContext, StrategyResult


# =============================================================================
# INPUT: StrategyRequest
# =============================================================================


class StrategyRequest(BaseModel):
    """
    Request for one strategy report.

    Accepts camelCase (latestCandle) or snake_case (latest_candle) keys.
    Candles are chronological, oldest first.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    symbol: Symbol
    latest_candle: Candle
    indicator: IndicatorSnapshot = Field(default_factory=IndicatorSnapshot)
    candles: list[Candle] = Field(default_factory=list)
    investment_horizon: InvestmentHorizon = InvestmentHorizon.SWING
    volatility_level: Optional[VolatilityLevel] = Field(
        default=None,
        description="Derived from Bollinger band width when omitted",
    )
    recent_band_width: Optional[float] = Field(
        default=None,
        ge=0,
        description="Recent relative band width, for market-condition detection",
    )


# =============================================================================
# OUTPUT: StrategyReport
# =============================================================================


class SignalConfidence(BaseModel):
    """Weighted confidence in the report's signals, with its contributions."""

    score: float = Field(..., ge=0.0, le=1.0)
    raw_score: float
    market_condition: str
    breakdown: dict[str, float] = Field(default_factory=dict)


class StrategyReport(BaseModel):
    """
    Complete report for one symbol and horizon.

    Returned by: ReportService
    Consumed by: HTTP API / external report store
    """

    symbol: Symbol
    investment_horizon: InvestmentHorizon
    volatility_level: VolatilityLevel

    entry_price: float = Field(..., gt=0)
    target_price1: float = Field(..., gt=0)
    target_price2: float = Field(..., gt=0)
    stop_loss_price: float = Field(..., gt=0)
    target_percent1: float
    target_percent2: float

    result: StrategyResult
    signal_confidence: SignalConfidence
    historical_context: Optional[HistoricalContext] = None
    candles_analyzed: int = Field(..., ge=0)

    generated_at: datetime
    valid_until: datetime
    validity_hours: float = Field(..., gt=0)
