"""
Historical Pattern Analyzer Implementation
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, Sequence

from tradeplan.schemas.market import IndicatorSnapshot
from tradeplan.schemas.strategy import HistoricalContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoricalOutcome:
    """One evaluated past generation."""

    rsi: float
    macd: Optional[float]
    macd_signal: Optional[float]
    was_direction_correct: bool
    price_change_percent: Optional[float]
    created_at: datetime

    @property
    def is_bullish(self) -> bool:
        return (self.macd or 0.0) > (self.macd_signal or 0.0)


class ReportHistorySource(Protocol):
    """Read-only access to evaluated past generations."""

    async def fetch_outcomes(
        self,
        symbol_code: str,
        rsi_min: float,
        rsi_max: float,
        since: datetime,
    ) -> Sequence[HistoricalOutcome]:
        """Evaluated outcomes for the symbol with RSI in [rsi_min, rsi_max], created after since."""
        ...


def _round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up (towards +inf), like Math.round."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def _percentile(sorted_values: list[float], p: float) -> float:
    if not sorted_values:
        return 0.0
    return sorted_values[math.floor((len(sorted_values) - 1) * p)]


def _insight(success_rate: int, avg_return: float) -> str:
    if success_rate >= 70:
        text = (
            f"High confidence pattern: similar setups succeeded {success_rate}% of the time."
        )
    elif success_rate >= 50:
        text = (
            f"Moderate pattern: similar setups succeeded {success_rate}% of the time. "
            "Approach carefully."
        )
    else:
        text = (
            f"Caution: similar setups succeeded only {success_rate}% of the time, "
            "even with favourable indicators."
        )

    if avg_return < -2:
        text += f" Average loss of {avg_return}% signals elevated risk."
    elif avg_return > 3:
        text += f" Average return of {avg_return}% is favourable."
    return text


def summarize_outcomes(outcomes: Sequence[HistoricalOutcome]) -> Optional[HistoricalContext]:
    """Outcome statistics. Pure; None for an empty input."""
    if not outcomes:
        return None

    total = len(outcomes)
    successes = sum(1 for o in outcomes if o.was_direction_correct)
    success_rate = int(_round_half_up(successes / total * 100))

    returns = sorted(
        o.price_change_percent for o in outcomes if o.price_change_percent
    )
    if returns:
        avg_return = _round_half_up(sum(returns) / len(returns), 2)
        max_return = _round_half_up(returns[-1], 2)
        min_return = _round_half_up(returns[0], 2)
    else:
        avg_return = max_return = min_return = 0.0

    return HistoricalContext(
        total_cases=total,
        success_cases=successes,
        success_rate=success_rate,
        avg_return=avg_return,
        max_return=max_return,
        min_return=min_return,
        p25_return=_round_half_up(_percentile(returns, 0.25), 2),
        p75_return=_round_half_up(_percentile(returns, 0.75), 2),
        insight=_insight(success_rate, avg_return),
    )


class HistoricalPatternAnalyzer:
    """Finds similar past setups and summarizes how they played out."""

    def __init__(
        self,
        source: ReportHistorySource,
        rsi_band: float = 10.0,
        lookback_days: int = 90,
    ):
        self._source = source
        self._rsi_band = rsi_band
        self._lookback = timedelta(days=lookback_days)

    async def analyze(
        self,
        symbol_code: str,
        indicator: Optional[IndicatorSnapshot],
        now: Optional[datetime] = None,
    ) -> Optional[HistoricalContext]:
        if indicator is None or indicator.rsi is None:
            return None

        now = now or datetime.now(timezone.utc)
        rsi = indicator.rsi
        bullish = (indicator.macd or 0.0) > (indicator.macd_signal or 0.0)

        candidates = await self._source.fetch_outcomes(
            symbol_code,
            rsi_min=rsi - self._rsi_band,
            rsi_max=rsi + self._rsi_band,
            since=now - self._lookback,
        )
        matches = [o for o in candidates if o.is_bullish == bullish]

        logger.debug(
            f"History for {symbol_code}: {len(candidates)} in RSI band, "
            f"{len(matches)} with matching MACD direction"
        )
        return summarize_outcomes(matches)
