"""Tests for the signal confidence scorer."""

import pytest

from tradeplan.core.config import build_strategy_config, load_settings
from tradeplan.schemas.market import IndicatorSnapshot
from tradeplan.schemas.strategy import HistoricalContext
from tradeplan.services.strategy.confidence import (
    ConfidenceScorer,
    MarketCondition,
    get_market_condition,
)


# ── Helpers ──────────────────────────────────────────────────────────────────


def _make_scorer(**overrides):
    config = build_strategy_config(load_settings(_env_file=None, **overrides))
    return ConfidenceScorer(config.confidence)


def _make_history(success_rate=80, total_cases=10):
    return HistoricalContext(
        total_cases=total_cases,
        success_cases=round(total_cases * success_rate / 100),
        success_rate=success_rate,
        avg_return=1.5,
        max_return=4.0,
        min_return=-2.0,
        p25_return=-0.5,
        p75_return=2.5,
        insight="Moderate pattern",
    )


# ── Tests ────────────────────────────────────────────────────────────────────


class TestMarketCondition:
    def test_wide_band_is_volatile(self):
        assert get_market_condition(0.2) == MarketCondition.VOLATILE

    def test_expanding_band_is_volatile(self):
        assert get_market_condition(0.08, recent_band_width=0.13) == MarketCondition.VOLATILE

    def test_narrow_band_is_stable(self):
        assert get_market_condition(0.04) == MarketCondition.STABLE

    def test_otherwise_normal(self):
        assert get_market_condition(0.08, recent_band_width=0.09) == MarketCondition.NORMAL


class TestScore:
    def test_no_signals_returns_base(self):
        result = _make_scorer().score(IndicatorSnapshot(), close=10000, candles_analyzed=10)
        assert result.score == 0.5
        assert result.breakdown == {"base": 0.5}
        assert result.market_condition == MarketCondition.NORMAL

    def test_missing_indicator_treated_as_empty(self):
        result = _make_scorer().score(None, close=10000, candles_analyzed=0)
        assert result.score == 0.5

    def test_full_agreement_clamped_to_max(self):
        indicator = IndicatorSnapshot(
            rsi=75, macd=100, macd_signal=20, ma5=110, ma20=100, ma60=90, volume_ratio=2.0
        )
        result = _make_scorer().score(
            indicator,
            close=10000,
            candles_analyzed=120,
            historical=_make_history(success_rate=90, total_cases=25),
        )
        assert result.breakdown["indicator_agreement"] == pytest.approx(0.15)
        assert result.breakdown["data_quality"] == pytest.approx(0.15)
        assert result.breakdown["volume"] == pytest.approx(0.1)
        assert result.breakdown["sample_size_bonus"] == pytest.approx(0.05)
        assert result.raw_score > 0.95
        assert result.score == 0.95

    def test_partial_agreement(self):
        indicator = IndicatorSnapshot(rsi=50, macd=100, macd_signal=20)
        result = _make_scorer().score(indicator, close=10000, candles_analyzed=60)
        assert result.breakdown["indicator_agreement"] == pytest.approx(0.075)
        assert result.breakdown["data_quality"] == pytest.approx(0.08)

    def test_volatile_market_penalty_and_floor(self):
        indicator = IndicatorSnapshot(bb_upper=11000, bb_lower=9000)
        result = _make_scorer().score(indicator, close=10000, candles_analyzed=0)
        assert result.market_condition == MarketCondition.VOLATILE
        assert result.breakdown["volatility"] == pytest.approx(-0.2)
        assert result.raw_score == pytest.approx(0.3)
        assert result.score == 0.35

    def test_stable_market_weights_history_higher(self):
        indicator = IndicatorSnapshot(bb_upper=10200, bb_lower=9800)
        result = _make_scorer().score(
            indicator,
            close=10000,
            candles_analyzed=0,
            historical=_make_history(success_rate=80, total_cases=10),
        )
        assert result.market_condition == MarketCondition.STABLE
        assert result.breakdown["historical_accuracy"] == pytest.approx(0.32)
        assert "volatility" not in result.breakdown
        assert result.score == pytest.approx(0.82)

    def test_small_history_is_ignored(self):
        result = _make_scorer().score(
            IndicatorSnapshot(),
            close=10000,
            candles_analyzed=0,
            historical=_make_history(total_cases=4),
        )
        assert "historical_accuracy" not in result.breakdown

    def test_floor_applies_to_low_base(self):
        result = _make_scorer(confidence_base=0.1).score(
            IndicatorSnapshot(), close=10000, candles_analyzed=0
        )
        assert result.raw_score == pytest.approx(0.1)
        assert result.score == 0.35

    def test_score_always_within_bounds(self):
        scorer = _make_scorer()
        for rsi in (5, 50, 95):
            for width in (0.01, 0.12, 0.4):
                indicator = IndicatorSnapshot(
                    rsi=rsi, bb_upper=10000 * (1 + width / 2), bb_lower=10000 * (1 - width / 2)
                )
                score = scorer.score(indicator, close=10000, candles_analyzed=200).score
                assert 0.35 <= score <= 0.95
