"""
Report Service

CONTRACT:
    Input:  StrategyRequest
    Output: StrategyReport

Pipeline:
    1. Volatility level (explicit, or from Bollinger band width)
    2. Target / stop-loss prices
    3. Historical context (errors are logged and treated as "no context")
    4. StrategyGenerator → StrategyResult
    5. Signal confidence with breakdown
    6. Validity window
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from tradeplan.core.config import StrategyConfig
from tradeplan.schemas.report import SignalConfidence, StrategyReport, StrategyRequest
from tradeplan.schemas.strategy import HistoricalContext, StrategyGenerationContext
from tradeplan.services.base import BaseService
from tradeplan.services.history import HistoricalPatternAnalyzer
from tradeplan.services.strategy.confidence import ConfidenceScorer
from tradeplan.services.strategy.generator import StrategyGenerator
from tradeplan.services.strategy.targets import TargetPriceCalculator, classify_volatility

logger = logging.getLogger(__name__)


class ReportService(BaseService[StrategyRequest, StrategyReport]):
    """Assembles a StrategyReport around one generate() call."""

    def __init__(
        self,
        config: StrategyConfig,
        generator: StrategyGenerator,
        history: Optional[HistoricalPatternAnalyzer] = None,
    ):
        self._config = config
        self._generator = generator
        self._history = history
        self._targets = TargetPriceCalculator(config)
        self._scorer = ConfidenceScorer(config.confidence)

    @property
    def name(self) -> str:
        return "ReportService"

    @property
    def generator(self) -> StrategyGenerator:
        return self._generator

    async def health_check(self) -> bool:
        return await self._generator.health_check()

    async def execute(self, input_data: StrategyRequest) -> StrategyReport:
        return await self.create_report(input_data)

    async def _load_history(self, request: StrategyRequest) -> Optional[HistoricalContext]:
        if self._history is None:
            return None
        try:
            return await self._history.analyze(request.symbol.code, request.indicator)
        except Exception as e:
            logger.warning(f"Historical context unavailable for {request.symbol.code}: {e}")
            return None

    async def create_report(
        self, request: StrategyRequest, now: Optional[datetime] = None
    ) -> StrategyReport:
        now = now or datetime.now(timezone.utc)
        symbol = request.symbol
        close = request.latest_candle.close
        horizon = request.investment_horizon
        thresholds = self._config.confidence.thresholds

        # Step 1: Volatility
        volatility = request.volatility_level or classify_volatility(
            request.indicator.band_width(close),
            high=thresholds.volatility_high,
            medium=thresholds.volatility_medium,
        )

        # Step 2: Targets
        entry_price = close
        targets = self._targets.calculate(horizon, entry_price, volatility, symbol.code)

        # Step 3: History
        historical = await self._load_history(request)

        logger.info(
            f"Report for {symbol.code}: {horizon.value}/{volatility.value}, "
            f"entry {entry_price:.0f}, history {'yes' if historical else 'no'}"
        )

        # Step 4: Strategy
        context = StrategyGenerationContext(
            symbol=symbol,
            entry_price=entry_price,
            target_price1=targets.target1,
            target_price2=targets.target2,
            stop_loss_price=targets.stop_loss,
            latest_candle=request.latest_candle,
            indicator=request.indicator,
            candles=request.candles,
            investment_horizon=horizon,
            volatility_level=volatility,
            historical_context=historical,
        )
        result = await self._generator.generate(context)

        # Step 5: Signal confidence
        candles_analyzed = len(request.candles)
        confidence = self._scorer.score(
            indicator=request.indicator,
            close=close,
            candles_analyzed=candles_analyzed,
            historical=historical,
            recent_band_width=request.recent_band_width,
        )

        # Step 6: Validity
        hours = self._targets.report_validity_hours(horizon, volatility)

        return StrategyReport(
            symbol=symbol,
            investment_horizon=horizon,
            volatility_level=volatility,
            entry_price=entry_price,
            target_price1=targets.target1,
            target_price2=targets.target2,
            stop_loss_price=targets.stop_loss,
            target_percent1=round((targets.target1 - entry_price) / entry_price * 100, 2),
            target_percent2=round((targets.target2 - entry_price) / entry_price * 100, 2),
            result=result,
            signal_confidence=SignalConfidence(
                score=confidence.score,
                raw_score=confidence.raw_score,
                market_condition=confidence.market_condition.value,
                breakdown=confidence.breakdown,
            ),
            historical_context=historical,
            candles_analyzed=candles_analyzed,
            generated_at=now,
            valid_until=now + timedelta(hours=hours),
            validity_hours=hours,
        )


# Singleton instance
_report_service: Optional[ReportService] = None


def get_report_service() -> ReportService:
    """Get or create report service singleton."""
    global _report_service
    if _report_service is None:
        from tradeplan.core.config import get_strategy_config
        from tradeplan.services.strategy.generator import get_strategy_generator

        config = get_strategy_config()
        history = None
        if config.history.database_url:
            from tradeplan.db import SqlReportHistorySource, open_history_db

            history = HistoricalPatternAnalyzer(
                SqlReportHistorySource(open_history_db(config.history.database_url)),
                rsi_band=config.history.rsi_band,
                lookback_days=config.history.lookback_days,
            )
        _report_service = ReportService(config, get_strategy_generator(), history)
    return _report_service
