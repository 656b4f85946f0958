"""
TradePlan Schema Contracts

This module defines all JSON contracts between system components.
These are the authoritative interfaces - all modules must conform to these schemas.
"""

from tradeplan.schemas.market import (
    Candle,
    IndicatorSnapshot,
    IndicatorValues,
    InvestmentHorizon,
    Symbol,
    VolatilityLevel,
)
from tradeplan.schemas.strategy import (
    FailureKind,
    HistoricalContext,
    InvestmentStrategy,
    StrategyGenerationContext,
    StrategyMetadata,
    StrategyResult,
    StrategySource,
)
from tradeplan.schemas.metrics import CostEstimate, PerformanceMetrics
from tradeplan.schemas.report import StrategyReport, StrategyRequest

__all__ = [
    # Market
    "Candle",
    "IndicatorSnapshot",
    "IndicatorValues",
    "InvestmentHorizon",
    "Symbol",
    "VolatilityLevel",
    # Strategy
    "FailureKind",
    "HistoricalContext",
    "InvestmentStrategy",
    "StrategyGenerationContext",
    "StrategyMetadata",
    "StrategyResult",
    "StrategySource",
    # Monitoring
    "CostEstimate",
    "PerformanceMetrics",
    # Report
    "StrategyReport",
    "StrategyRequest",
]
