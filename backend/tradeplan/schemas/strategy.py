"""
Strategy Generation Contracts

Input:  StrategyGenerationContext
Output: StrategyResult (carrying an InvestmentStrategy)

The InvestmentStrategy document is also the wire contract with the LLM, so
its JSON keys are camelCase ("entryRatio", "stopLoss", ...). Python code uses
the snake_case attribute names.

A strategy is either fully present or absent. Partially populated strategies
never leave the validator.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from tradeplan.schemas.market import (
    Candle,
    IndicatorSnapshot,
    InvestmentHorizon,
    Symbol,
    VolatilityLevel,
)


# =============================================================================
# ENUMS
# =============================================================================


class StrategySource(str, Enum):
    AI = "ai"  # Generative completion, schema-validated
    RULE_BASED = "rule-based"  # Indicator-threshold rules
    FALLBACK = "fallback"  # Fixed minimal plan


class FailureKind(str, Enum):
    TRANSPORT_FAILURE = "transport_failure"  # Network, auth, timeout
    MALFORMED_RESPONSE = "malformed_response"  # Body is not a JSON object
    SCHEMA_VIOLATION = "schema_violation"  # Unrepairable after one repair pass
    INTERNAL_EXCEPTION = "internal_exception"  # Unexpected error inside a tier


# =============================================================================
# OUTPUT: InvestmentStrategy document
# =============================================================================


class _StrategyDocument(BaseModel):
    """Common config for the camelCase strategy document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        loc_by_alias=True,
    )


class StopLossInfo(_StrategyDocument):
    price: float = Field(..., gt=0)
    percent: float = Field(..., ge=-50, le=0, description="Distance from entry, negative")
    timing: str = Field(..., min_length=3)
    reason: str = Field(..., min_length=5)


class Phase1Strategy(_StrategyDocument):
    """Initial entry."""

    entry_ratio: float = Field(..., ge=15, le=50, description="% of capital for first entry")
    entry_timing: str = Field(..., min_length=3)
    reasoning: str = Field(
        ...,
        min_length=10,
        description="Technical / trend / support-resistance / volume factors",
    )
    stop_loss: StopLossInfo


class ScenarioAction(_StrategyDocument):
    """Reaction to one market scenario."""

    condition: str = Field(..., min_length=5)
    action: str = Field(..., min_length=3)
    action_ratio: Optional[float] = Field(default=None, ge=15, le=50)
    exit_ratio: Optional[float] = Field(default=None, ge=30, le=100)
    reason: str = Field(..., min_length=5)


class Phase2Strategy(_StrategyDocument):
    """Scenario playbook after entry."""

    bullish: ScenarioAction
    sideways: ScenarioAction
    bearish: ScenarioAction


class TargetAction(_StrategyDocument):
    """Take-profit step at a target price."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    price: str = Field(..., min_length=3, description="Formatted target price")
    action: str = Field(..., min_length=3)
    exit_ratio: float = Field(..., ge=20, le=100)
    reason: str = Field(..., min_length=5)


class Phase3Strategy(_StrategyDocument):
    """Exits at target prices."""

    target1: TargetAction
    target2: TargetAction
    additional: Optional[str] = None


class InvestmentStrategy(_StrategyDocument):
    """
    Three-phase trading plan.

    Returned by: StrategyGenerator (via one of the tiers)
    Consumed by: report persistence and the HTTP API
    """

    phase1: Phase1Strategy
    phase2: Phase2Strategy
    phase3: Phase3Strategy


# =============================================================================
# INPUT: Generation context
# =============================================================================


class HistoricalContext(BaseModel):
    """Outcome statistics of past generations in the same indicator regime."""

    total_cases: int = Field(..., ge=1)
    success_cases: int = Field(..., ge=0)
    success_rate: int = Field(..., ge=0, le=100, description="Rounded percent")
    avg_return: float
    max_return: float
    min_return: float
    p25_return: float
    p75_return: float
    insight: str


class StrategyGenerationContext(BaseModel):
    """
    Everything a tier needs to build a strategy.

    Constructed once per request and never mutated.
    Candles are in chronological order (oldest first).
    """

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    entry_price: float = Field(..., gt=0)
    target_price1: float = Field(..., gt=0)
    target_price2: float = Field(..., gt=0)
    stop_loss_price: float = Field(..., gt=0)
    latest_candle: Candle
    indicator: IndicatorSnapshot = Field(default_factory=IndicatorSnapshot)
    candles: list[Candle] = Field(default_factory=list)
    investment_horizon: InvestmentHorizon
    volatility_level: VolatilityLevel = VolatilityLevel.MEDIUM
    historical_context: Optional[HistoricalContext] = None

    @property
    def current_price(self) -> float:
        return self.latest_candle.close


# =============================================================================
# OUTPUT: StrategyResult
# =============================================================================


class StrategyMetadata(BaseModel):
    """Provenance of one generation attempt."""

    generation_time_ms: float = Field(default=0.0, ge=0)
    ai_model: Optional[str] = None
    tokens_used: Optional[int] = None
    rule_version: Optional[str] = None
    validation_passed: Optional[bool] = Field(
        default=None,
        description="None when the validator never ran (e.g. transport failure)",
    )
    validation_errors: Optional[list[str]] = None
    fixed_fields: Optional[list[str]] = None
    attempted_sources: list[StrategySource] = Field(default_factory=list)


class StrategyResult(BaseModel):
    """
    Outcome of a tier attempt, and of a whole generate() call.

    success is True exactly when a validated (or repaired) strategy is present.
    """

    success: bool
    strategy: Optional[InvestmentStrategy] = None
    source: StrategySource
    confidence: float = Field(..., ge=0.0, le=1.0)
    metadata: StrategyMetadata = Field(default_factory=StrategyMetadata)
    errors: Optional[list[str]] = None
    failure_kind: Optional[FailureKind] = None

    @model_validator(mode="after")
    def success_requires_validated_strategy(self):
        if self.success:
            if self.strategy is None:
                raise ValueError("successful result must carry a strategy")
            if self.metadata.validation_passed is False:
                raise ValueError("successful result must have passed validation")
        elif self.strategy is not None:
            raise ValueError("failed result must not carry a strategy")
        return self
