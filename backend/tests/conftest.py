"""Shared fixtures for the tradeplan test suite."""

import asyncio
import copy
from datetime import datetime, timedelta

import pytest

from tradeplan.core.config import build_strategy_config, load_settings
from tradeplan.schemas.market import Candle, IndicatorSnapshot, InvestmentHorizon, Symbol
from tradeplan.schemas.strategy import StrategyGenerationContext
from tradeplan.services.llm.client import LLMConfig, LLMProvider, LLMResponse

LLM_ENV_VARS = ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "LLM_PROVIDER", "REPORT_HISTORY_URL"]

VALID_STRATEGY_DOC = {
    "phase1": {
        "entryRatio": 30,
        "entryTiming": "Enter after MA20 support is confirmed",
        "reasoning": "RSI 58 above 50, MACD golden cross, bullish alignment, volume 130%",
        "stopLoss": {
            "price": 9700,
            "percent": -3.0,
            "timing": "Close below MA20",
            "reason": "Fibonacci 38.2% support breaks",
        },
    },
    "phase2": {
        "bullish": {
            "condition": "MACD histogram rises three candles",
            "action": "Add to position",
            "actionRatio": 30,
            "reason": "Uptrend strengthening",
        },
        "sideways": {
            "condition": "Price within 2% for three days",
            "action": "Hold",
            "reason": "Wait for a breakout",
        },
        "bearish": {
            "condition": "Close below MA20 and MACD dead cross",
            "action": "Partial exit",
            "exitRatio": 70,
            "reason": "Trend reversal confirmed",
        },
    },
    "phase3": {
        "target1": {
            "price": "10,300 KRW",
            "action": "Take 50% profit",
            "exitRatio": 50,
            "reason": "Fibonacci 61.8% level",
        },
        "target2": {
            "price": "10,500 KRW",
            "action": "Take the rest",
            "exitRatio": 100,
            "reason": "Prior high resistance",
        },
    },
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep real credentials and stores out of tests."""
    for var in LLM_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def strategy_config():
    return build_strategy_config(load_settings(_env_file=None))


@pytest.fixture
def valid_doc():
    """A fresh, schema-valid strategy document (camelCase wire form)."""
    return copy.deepcopy(VALID_STRATEGY_DOC)


def make_candles(count, close=10000.0, volume=1000.0, start=None):
    """Chronological candles around a flat close."""
    start = start or datetime(2026, 1, 1)
    return [
        Candle(
            open=close,
            high=close * 1.01,
            low=close * 0.99,
            close=close,
            volume=volume,
            timestamp=start + timedelta(days=i),
        )
        for i in range(count)
    ]


def make_context(
    rsi=50.0,
    macd=0.0,
    macd_signal=0.0,
    close=10000.0,
    entry=10000.0,
    target1=10300.0,
    target2=10500.0,
    stop=9700.0,
    candles=30,
    horizon=InvestmentHorizon.SWING,
    historical=None,
    indicator=None,
):
    """StrategyGenerationContext with sensible defaults."""
    window = make_candles(candles, close=close)
    latest = window[-1] if window else make_candles(1, close=close)[0]
    return StrategyGenerationContext(
        symbol=Symbol(code="005930", name="Samsung Electronics"),
        entry_price=entry,
        target_price1=target1,
        target_price2=target2,
        stop_loss_price=stop,
        latest_candle=latest,
        indicator=indicator
        or IndicatorSnapshot(rsi=rsi, macd=macd, macd_signal=macd_signal),
        candles=window,
        investment_horizon=horizon,
        historical_context=historical,
    )


class FakeLLMClient:
    """Stands in for LLMClient: returns a canned body or raises."""

    def __init__(self, content=None, error=None, delay=0.0, configured=True):
        self.content = content
        self.error = error
        self.delay = delay
        self.is_configured = configured
        self.model = "fake-model"
        self.config = LLMConfig(provider=LLMProvider.OPENAI, model=self.model)
        self.calls = 0

    def get_active_provider(self):
        return self.config.provider if self.is_configured else None

    async def generate(self, system_prompt, user_prompt, response_format=None, **kwargs):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.content,
            model=self.model,
            provider=LLMProvider.OPENAI,
            usage={"total_tokens": 1200},
        )
