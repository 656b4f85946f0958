"""Tests for ReportService."""

from datetime import datetime, timezone

import pytest

from tradeplan.schemas.market import (
    Candle,
    IndicatorSnapshot,
    InvestmentHorizon,
    Symbol,
    VolatilityLevel,
)
from tradeplan.schemas.report import StrategyRequest
from tradeplan.schemas.strategy import StrategySource
from tradeplan.services.history import HistoricalOutcome, HistoricalPatternAnalyzer
from tradeplan.services.monitoring import MonitoringService
from tradeplan.services.report import ReportService
from tradeplan.services.strategy.generator import StrategyGenerator, build_default_tiers

from conftest import FakeLLMClient, make_candles

NOW = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────────────


class FakeHistorySource:
    def __init__(self, outcomes=None, error=None):
        self.outcomes = outcomes or []
        self.error = error

    async def fetch_outcomes(self, symbol_code, rsi_min, rsi_max, since):
        if self.error is not None:
            raise self.error
        return self.outcomes


def _make_request(**kwargs):
    candles = make_candles(60)
    defaults = dict(
        symbol=Symbol(code="005930", name="Samsung Electronics"),
        latest_candle=candles[-1],
        indicator=IndicatorSnapshot(rsi=58, macd=12, macd_signal=7),
        candles=candles,
    )
    defaults.update(kwargs)
    return StrategyRequest(**defaults)


def _make_service(config, history=None):
    generator = StrategyGenerator(
        build_default_tiers(FakeLLMClient(configured=False)), monitoring=MonitoringService()
    )
    return ReportService(config, generator, history)


# ── Tests ────────────────────────────────────────────────────────────────────


class TestCreateReport:
    @pytest.mark.asyncio
    async def test_report_without_llm(self, strategy_config):
        report = await _make_service(strategy_config).create_report(_make_request(), now=NOW)
        assert report.result.success is True
        assert report.result.source == StrategySource.RULE_BASED
        assert report.entry_price == 10000
        assert report.volatility_level == VolatilityLevel.MEDIUM
        assert report.target_price1 == pytest.approx(10300)
        assert report.target_percent1 == pytest.approx(3.0)
        assert report.stop_loss_price == pytest.approx(9700)
        assert report.candles_analyzed == 60
        assert report.historical_context is None
        assert report.validity_hours == 12
        assert report.valid_until == datetime(2026, 6, 1, 21, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_volatility_from_band_width(self, strategy_config):
        request = _make_request(
            indicator=IndicatorSnapshot(rsi=58, bb_upper=11000, bb_lower=9000)
        )
        report = await _make_service(strategy_config).create_report(request, now=NOW)
        assert report.volatility_level == VolatilityLevel.HIGH
        assert report.target_price1 == pytest.approx(10450)
        assert report.validity_hours == 6
        assert report.signal_confidence.market_condition == "volatile"

    @pytest.mark.asyncio
    async def test_explicit_volatility_wins(self, strategy_config):
        request = _make_request(
            volatility_level=VolatilityLevel.LOW,
            investment_horizon=InvestmentHorizon.MEDIUM,
        )
        report = await _make_service(strategy_config).create_report(request, now=NOW)
        assert report.volatility_level == VolatilityLevel.LOW
        assert report.target_price1 == pytest.approx(10800)

    @pytest.mark.asyncio
    async def test_history_feeds_confidence(self, strategy_config):
        outcomes = [
            HistoricalOutcome(
                rsi=57,
                macd=2,
                macd_signal=1,
                was_direction_correct=i < 8,
                price_change_percent=2.0,
                created_at=datetime(2026, 5, 20),
            )
            for i in range(10)
        ]
        history = HistoricalPatternAnalyzer(FakeHistorySource(outcomes))
        report = await _make_service(strategy_config, history).create_report(
            _make_request(), now=NOW
        )
        assert report.historical_context.total_cases == 10
        assert report.historical_context.success_rate == 80
        assert report.signal_confidence.breakdown["historical_accuracy"] == pytest.approx(0.24)

    @pytest.mark.asyncio
    async def test_history_errors_are_ignored(self, strategy_config):
        history = HistoricalPatternAnalyzer(FakeHistorySource(error=OSError("db down")))
        report = await _make_service(strategy_config, history).create_report(
            _make_request(), now=NOW
        )
        assert report.result.success is True
        assert report.historical_context is None

    def test_request_accepts_camel_case(self):
        candle = make_candles(1)[0].model_dump()
        request = StrategyRequest.model_validate(
            {
                "symbol": {"code": "005930", "name": "Samsung Electronics"},
                "latestCandle": candle,
                "indicator": {"rsi": 60, "macdSignal": 1.5, "bbUpper": 11000},
                "investmentHorizon": "long",
            }
        )
        assert request.latest_candle == Candle(**candle)
        assert request.indicator.macd_signal == 1.5
        assert request.investment_horizon == InvestmentHorizon.LONG
