"""Tests for target price calculation and volatility classification."""

import pytest

from tradeplan.schemas.market import InvestmentHorizon, VolatilityLevel
from tradeplan.services.strategy.targets import TargetPriceCalculator, classify_volatility


# ── Helpers ──────────────────────────────────────────────────────────────────


@pytest.fixture
def calculator(strategy_config):
    return TargetPriceCalculator(strategy_config)


# ── Tests ────────────────────────────────────────────────────────────────────


class TestCalculate:
    def test_swing_high_volatility(self, calculator):
        prices = calculator.calculate(InvestmentHorizon.SWING, 10000, VolatilityLevel.HIGH)
        assert prices.target1 == pytest.approx(10450)
        assert prices.target2 == pytest.approx(10750)
        assert prices.stop_loss == pytest.approx(9700)

    def test_stop_loss_ignores_volatility(self, calculator):
        low = calculator.calculate(InvestmentHorizon.MEDIUM, 10000, VolatilityLevel.LOW)
        high = calculator.calculate(InvestmentHorizon.MEDIUM, 10000, VolatilityLevel.HIGH)
        assert low.stop_loss == high.stop_loss == pytest.approx(9500)
        assert low.target1 == pytest.approx(10800)
        assert high.target1 == pytest.approx(11300)

    def test_medium_volatility_is_unscaled(self, calculator):
        prices = calculator.calculate(InvestmentHorizon.LONG, 50000)
        assert prices.target1 == pytest.approx(60000)
        assert prices.target2 == pytest.approx(65000)
        assert prices.stop_loss == pytest.approx(46000)

    def test_targets_ordered(self, calculator):
        for horizon in InvestmentHorizon:
            for level in VolatilityLevel:
                p = calculator.calculate(horizon, 12345, level)
                assert p.stop_loss < 12345 < p.target1 < p.target2

    def test_symbol_override_replaces_percentages(self, calculator):
        prices = calculator.calculate(
            InvestmentHorizon.SWING, 10000, VolatilityLevel.HIGH, symbol_code="298380"
        )
        # 5% and 8% scaled by the untouched base multiplier 1.5
        assert prices.target1 == pytest.approx(10750)
        assert prices.target2 == pytest.approx(11200)
        assert prices.stop_loss == pytest.approx(9700)

    def test_override_for_other_horizon_is_ignored(self, calculator):
        prices = calculator.calculate(
            InvestmentHorizon.LONG, 10000, VolatilityLevel.MEDIUM, symbol_code="298380"
        )
        assert prices.target1 == pytest.approx(12000)

    def test_unknown_symbol_uses_base(self, calculator):
        base = calculator.horizon_config(InvestmentHorizon.SWING)
        assert calculator.horizon_config(InvestmentHorizon.SWING, "000000") == base


class TestClassifyVolatility:
    @pytest.mark.parametrize(
        "width,expected",
        [
            (0.2, VolatilityLevel.HIGH),
            (0.12, VolatilityLevel.MEDIUM),
            (0.1, VolatilityLevel.LOW),
            (0.03, VolatilityLevel.LOW),
            (None, VolatilityLevel.MEDIUM),
            (0, VolatilityLevel.MEDIUM),
        ],
    )
    def test_levels(self, width, expected):
        assert classify_volatility(width) == expected


class TestValidity:
    def test_swing_high_is_halved(self, calculator):
        assert calculator.report_validity_hours(
            InvestmentHorizon.SWING, VolatilityLevel.HIGH
        ) == pytest.approx(6)

    def test_long_low_is_extended(self, calculator):
        assert calculator.report_validity_hours(
            InvestmentHorizon.LONG, VolatilityLevel.LOW
        ) == pytest.approx(108)
