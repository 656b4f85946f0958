"""
Application Configuration

Raw settings are loaded from environment variables (and .env) once, then
assembled into an immutable StrategyConfig that is passed into every
component constructor. Components never read the environment themselves.

Non-numeric values for numeric settings fail fast at startup with a
ConfigurationError instead of propagating NaN.
"""

from functools import lru_cache
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

from tradeplan.schemas.market import InvestmentHorizon, VolatilityLevel


class ConfigurationError(ValueError):
    """Configuration could not be loaded or is inconsistent."""
    pass


LLMProviderName = Literal["openai", "anthropic"]


# Per-symbol target overrides (high-volatility bio/game names, low-volatility financials)
DEFAULT_SYMBOL_OVERRIDES: dict[str, dict[str, dict[str, Any]]] = {
    "298380": {"swing": {"target1_percent": 5, "target2_percent": 8}},
    "112040": {"swing": {"target1_percent": 5, "target2_percent": 8}},
    "263750": {"swing": {"target1_percent": 5, "target2_percent": 8}},
    "105560": {
        "swing": {"target1_percent": 2, "target2_percent": 4},
        "medium": {"target1_percent": 8, "target2_percent": 10},
    },
}


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "TradePlan Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Report history store (read-only)
    report_history_url: Optional[str] = None  # e.g. sqlite+aiosqlite:///./data/reports.db
    history_lookback_days: int = 90
    history_rsi_band: float = 10.0

    # LLM Provider
    llm_provider: LLMProviderName = "openai"
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1500
    llm_timeout_seconds: float = 30.0
    llm_input_cost_per_million: float = 0.15
    llm_output_cost_per_million: float = 0.60

    # Target / stop-loss percentages per horizon
    swing_target_1: float = 3.0
    swing_target_2: float = 5.0
    swing_stop_loss: float = 3.0
    swing_vol_mult_high: float = 1.5
    swing_vol_mult_low: float = 0.7
    medium_target_1: float = 10.0
    medium_target_2: float = 12.0
    medium_stop_loss: float = 5.0
    medium_vol_mult_high: float = 1.3
    medium_vol_mult_low: float = 0.8
    long_target_1: float = 20.0
    long_target_2: float = 30.0
    long_stop_loss: float = 8.0
    long_vol_mult_high: float = 1.2
    long_vol_mult_low: float = 0.9
    symbol_overrides: dict[str, dict[str, dict[str, Any]]] = DEFAULT_SYMBOL_OVERRIDES

    # Confidence scoring
    confidence_base: float = 0.5
    conf_historical_weight: float = 0.3
    conf_data_quality_high: float = 0.15
    conf_data_quality_medium: float = 0.08
    conf_indicator_weight: float = 0.15
    conf_volume_surge: float = 0.1
    conf_volume_increase: float = 0.05
    conf_volatility_high: float = 0.15
    conf_volatility_medium: float = 0.1
    conf_sample_bonus: float = 0.05
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    macd_significant: float = 50.0
    volatility_high: float = 0.15
    volatility_medium: float = 0.1
    volume_surge: float = 1.5
    volume_increase: float = 1.0
    sample_size_bonus: int = 20
    min_historical_cases: int = 5
    confidence_min: float = 0.35
    confidence_max: float = 0.95
    conf_volatile_historical: float = 0.2
    conf_volatile_volatility: float = 0.2
    conf_stable_historical: float = 0.4
    conf_stable_volatility: float = 0.1

    # Report validity (hours)
    report_valid_swing_hours: float = 12.0
    report_valid_medium_hours: float = 24.0
    report_valid_long_hours: float = 72.0
    report_vol_adj_high: float = 0.5
    report_vol_adj_low: float = 1.5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# =============================================================================
# IMMUTABLE STRATEGY CONFIGURATION
# =============================================================================


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class VolatilityMultiplier(_Frozen):
    high: float = Field(..., gt=0)
    medium: float = Field(default=1.0, gt=0)
    low: float = Field(..., gt=0)

    def for_level(self, level: VolatilityLevel) -> float:
        return getattr(self, level.value)


class HorizonTargets(_Frozen):
    """Base percentages for one investment horizon."""

    target1_percent: float
    target2_percent: float
    stop_loss_percent: float
    volatility_multiplier: VolatilityMultiplier


class SymbolOverride(_Frozen):
    """Partial HorizonTargets. Omitted fields keep the base value."""

    target1_percent: Optional[float] = None
    target2_percent: Optional[float] = None
    stop_loss_percent: Optional[float] = None
    volatility_multiplier: Optional[VolatilityMultiplier] = None


class DataQualityWeights(_Frozen):
    high: float
    medium: float


class VolumeWeights(_Frozen):
    surge: float
    increase: float


class VolatilityWeights(_Frozen):
    high: float
    medium: float


class ConfidenceWeights(_Frozen):
    historical_accuracy: float
    data_quality: DataQualityWeights
    indicator_agreement: float
    volume: VolumeWeights
    volatility: VolatilityWeights
    sample_size_bonus: float


class ConfidenceThresholds(_Frozen):
    rsi_overbought: float
    rsi_oversold: float
    macd_significant: float
    volatility_high: float
    volatility_medium: float
    volume_surge: float
    volume_increase: float
    sample_size_bonus: int
    min_historical_cases: int
    high_data_candles: int = 100
    medium_data_candles: int = 50


class ConfidenceBounds(_Frozen):
    min: float = Field(..., ge=0, le=1)
    max: float = Field(..., ge=0, le=1)

    @model_validator(mode="after")
    def min_not_above_max(self):
        if self.min > self.max:
            raise ValueError(f"confidence min {self.min} exceeds max {self.max}")
        return self


class MarketAdjustment(_Frozen):
    """Weights that replace the base ones in a given market condition."""

    historical_accuracy: float
    volatility: float


class ConfidenceConfig(_Frozen):
    base: float
    weights: ConfidenceWeights
    thresholds: ConfidenceThresholds
    bounds: ConfidenceBounds
    volatile: MarketAdjustment
    stable: MarketAdjustment


class ReportValidityConfig(_Frozen):
    base_hours: dict[InvestmentHorizon, float]
    volatility_adjustment: dict[VolatilityLevel, float]


class LLMSettings(_Frozen):
    provider: LLMProviderName
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    model: str
    temperature: float
    max_tokens: int = Field(..., gt=0)
    timeout_seconds: float = Field(..., gt=0)
    input_cost_per_million: float
    output_cost_per_million: float

    @property
    def api_key(self) -> Optional[str]:
        """Credential for the selected provider."""
        if self.provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key


class HistorySettings(_Frozen):
    database_url: Optional[str] = None
    lookback_days: int = Field(default=90, gt=0)
    rsi_band: float = Field(default=10.0, gt=0)


class StrategyConfig(_Frozen):
    """Everything the strategy pipeline needs, resolved once."""

    targets: dict[InvestmentHorizon, HorizonTargets]
    symbol_overrides: dict[str, dict[InvestmentHorizon, SymbolOverride]]
    confidence: ConfidenceConfig
    validity: ReportValidityConfig
    llm: LLMSettings
    history: HistorySettings


def build_strategy_config(settings: Settings) -> StrategyConfig:
    """Assemble the immutable StrategyConfig from raw settings."""
    s = settings
    try:
        return StrategyConfig(
            targets={
                InvestmentHorizon.SWING: HorizonTargets(
                    target1_percent=s.swing_target_1,
                    target2_percent=s.swing_target_2,
                    stop_loss_percent=s.swing_stop_loss,
                    volatility_multiplier=VolatilityMultiplier(
                        high=s.swing_vol_mult_high, low=s.swing_vol_mult_low
                    ),
                ),
                InvestmentHorizon.MEDIUM: HorizonTargets(
                    target1_percent=s.medium_target_1,
                    target2_percent=s.medium_target_2,
                    stop_loss_percent=s.medium_stop_loss,
                    volatility_multiplier=VolatilityMultiplier(
                        high=s.medium_vol_mult_high, low=s.medium_vol_mult_low
                    ),
                ),
                InvestmentHorizon.LONG: HorizonTargets(
                    target1_percent=s.long_target_1,
                    target2_percent=s.long_target_2,
                    stop_loss_percent=s.long_stop_loss,
                    volatility_multiplier=VolatilityMultiplier(
                        high=s.long_vol_mult_high, low=s.long_vol_mult_low
                    ),
                ),
            },
            symbol_overrides=s.symbol_overrides,
            confidence=ConfidenceConfig(
                base=s.confidence_base,
                weights=ConfidenceWeights(
                    historical_accuracy=s.conf_historical_weight,
                    data_quality=DataQualityWeights(
                        high=s.conf_data_quality_high, medium=s.conf_data_quality_medium
                    ),
                    indicator_agreement=s.conf_indicator_weight,
                    volume=VolumeWeights(
                        surge=s.conf_volume_surge, increase=s.conf_volume_increase
                    ),
                    volatility=VolatilityWeights(
                        high=s.conf_volatility_high, medium=s.conf_volatility_medium
                    ),
                    sample_size_bonus=s.conf_sample_bonus,
                ),
                thresholds=ConfidenceThresholds(
                    rsi_overbought=s.rsi_overbought,
                    rsi_oversold=s.rsi_oversold,
                    macd_significant=s.macd_significant,
                    volatility_high=s.volatility_high,
                    volatility_medium=s.volatility_medium,
                    volume_surge=s.volume_surge,
                    volume_increase=s.volume_increase,
                    sample_size_bonus=s.sample_size_bonus,
                    min_historical_cases=s.min_historical_cases,
                ),
                bounds=ConfidenceBounds(min=s.confidence_min, max=s.confidence_max),
                volatile=MarketAdjustment(
                    historical_accuracy=s.conf_volatile_historical,
                    volatility=s.conf_volatile_volatility,
                ),
                stable=MarketAdjustment(
                    historical_accuracy=s.conf_stable_historical,
                    volatility=s.conf_stable_volatility,
                ),
            ),
            validity=ReportValidityConfig(
                base_hours={
                    InvestmentHorizon.SWING: s.report_valid_swing_hours,
                    InvestmentHorizon.MEDIUM: s.report_valid_medium_hours,
                    InvestmentHorizon.LONG: s.report_valid_long_hours,
                },
                volatility_adjustment={
                    VolatilityLevel.HIGH: s.report_vol_adj_high,
                    VolatilityLevel.MEDIUM: 1.0,
                    VolatilityLevel.LOW: s.report_vol_adj_low,
                },
            ),
            llm=LLMSettings(
                provider=s.llm_provider,
                openai_api_key=s.openai_api_key,
                anthropic_api_key=s.anthropic_api_key,
                model=s.llm_model,
                temperature=s.llm_temperature,
                max_tokens=s.llm_max_tokens,
                timeout_seconds=s.llm_timeout_seconds,
                input_cost_per_million=s.llm_input_cost_per_million,
                output_cost_per_million=s.llm_output_cost_per_million,
            ),
            history=HistorySettings(
                database_url=s.report_history_url,
                lookback_days=s.history_lookback_days,
                rsi_band=s.history_rsi_band,
            ),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid strategy configuration: {e}") from e


def load_settings(**overrides) -> Settings:
    """Load settings, converting validation errors into ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()


@lru_cache()
def get_strategy_config() -> StrategyConfig:
    """Get the process-wide StrategyConfig, assembled once."""
    return build_strategy_config(get_settings())
