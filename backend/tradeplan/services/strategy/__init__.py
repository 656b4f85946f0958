"""
Strategy Generation Service

CONTRACT:
    Input:  StrategyGenerationContext
    Output: StrategyResult

RESPONSIBILITIES:
    - Run the tier chain: AI → rule-based → fallback
    - Validate and repair AI output against the InvestmentStrategy schema
    - Target / stop-loss math and signal confidence scoring

This is the main entry point for generating trading strategies.
"""

from tradeplan.services.strategy.confidence import (
    ConfidenceScore,
    ConfidenceScorer,
    MarketCondition,
    get_market_condition,
)
from tradeplan.services.strategy.generator import (
    StrategyGenerator,
    build_default_tiers,
    get_strategy_generator,
)
from tradeplan.services.strategy.targets import (
    TargetPriceCalculator,
    TargetPrices,
    classify_volatility,
)
from tradeplan.services.strategy.tiers import (
    AIStrategyTier,
    FallbackStrategyTier,
    RuleBasedStrategyTier,
    StrategyTier,
)
from tradeplan.services.strategy.validator import (
    REPAIRS,
    StrategyValidator,
    ValidationErrorKind,
    ValidationResult,
)

__all__ = [
    "ConfidenceScore",
    "ConfidenceScorer",
    "MarketCondition",
    "get_market_condition",
    "StrategyGenerator",
    "build_default_tiers",
    "get_strategy_generator",
    "TargetPriceCalculator",
    "TargetPrices",
    "classify_volatility",
    "AIStrategyTier",
    "FallbackStrategyTier",
    "RuleBasedStrategyTier",
    "StrategyTier",
    "REPAIRS",
    "StrategyValidator",
    "ValidationErrorKind",
    "ValidationResult",
]
