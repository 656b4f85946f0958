"""
Market Inputs

Read-only inputs supplied by the external ingestion and analytics layers:
symbol identity, candles, and the latest indicator snapshot.

Indicator computation happens upstream. Every indicator field may be absent;
consumers never assume presence and call IndicatorSnapshot.resolve() to get
explicitly defaulted values.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================


class InvestmentHorizon(str, Enum):
    SWING = "swing"  # 3-7 days
    MEDIUM = "medium"  # 2-4 weeks
    LONG = "long"  # 1-3 months


class VolatilityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


HORIZON_LABELS = {
    InvestmentHorizon.SWING: "3-7 days",
    InvestmentHorizon.MEDIUM: "2-4 weeks",
    InvestmentHorizon.LONG: "1-3 months",
}


# =============================================================================
# INPUT MODELS
# =============================================================================


class Symbol(BaseModel):
    """Instrument identity."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, description="Exchange ticker code (e.g., 005930)")
    name: str = Field(..., min_length=1)
    market: str = Field(default="KOSPI")


class Candle(BaseModel):
    """Single candlestick data point."""

    model_config = ConfigDict(frozen=True)

    open: float = Field(..., gt=0)
    high: float = Field(..., gt=0)
    low: float = Field(..., gt=0)
    close: float = Field(..., gt=0)
    volume: float = Field(default=0, ge=0)
    timestamp: datetime


@dataclass(frozen=True)
class IndicatorValues:
    """Indicator values with defaults applied. Never contains None."""

    rsi: float
    macd: float
    macd_signal: float
    ma5: float
    ma20: float
    ma60: float
    volume_ratio: float

    @property
    def macd_histogram(self) -> float:
        return self.macd - self.macd_signal


class IndicatorSnapshot(BaseModel):
    """
    Latest technical indicator values for a symbol.

    Produced by the external indicator engine. Any field may be missing
    when there were not enough candles to compute it.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    rsi: Optional[float] = Field(default=None, ge=0, le=100)
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    ma5: Optional[float] = None
    ma20: Optional[float] = None
    ma60: Optional[float] = None
    bb_upper: Optional[float] = None
    bb_lower: Optional[float] = None
    volume_ratio: Optional[float] = Field(default=None, ge=0)

    def resolve(self, current_price: float) -> IndicatorValues:
        """Apply the documented defaults: neutral RSI, flat MACD, MAs at price."""
        return IndicatorValues(
            rsi=self.rsi if self.rsi is not None else 50.0,
            macd=self.macd if self.macd is not None else 0.0,
            macd_signal=self.macd_signal if self.macd_signal is not None else 0.0,
            ma5=self.ma5 if self.ma5 is not None else current_price,
            ma20=self.ma20 if self.ma20 is not None else current_price,
            ma60=self.ma60 if self.ma60 is not None else current_price,
            volume_ratio=self.volume_ratio if self.volume_ratio is not None else 1.0,
        )

    def band_width(self, close: float) -> Optional[float]:
        """Bollinger band width relative to price, or None without bands."""
        if self.bb_upper is None or self.bb_lower is None or close <= 0:
            return None
        return (self.bb_upper - self.bb_lower) / close


def format_price(price: float) -> str:
    """Display form of a price, e.g. '10,300 KRW'."""
    return f"{price:,.0f} KRW"
