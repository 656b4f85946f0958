"""Tests for the AI, rule-based and fallback strategy tiers."""

import json

import pytest
from pydantic import ValidationError

from tradeplan.schemas.strategy import FailureKind, StrategySource
from tradeplan.services.base import MalformedResponse
from tradeplan.services.llm.client import LLMProvider
from tradeplan.services.strategy.tiers import (
    AI_CONFIDENCE,
    AI_REPAIRED_CONFIDENCE,
    FALLBACK_CONFIDENCE,
    RULE_BASED_CONFIDENCE,
    RULE_VERSION,
    AIStrategyTier,
    FallbackStrategyTier,
    RuleBasedStrategyTier,
    entry_ratio_for,
    parse_json_object,
    scenario_trigger_price,
    stop_loss_percent,
)

from conftest import FakeLLMClient, make_context


# ── Helpers ──────────────────────────────────────────────────────────────────


def _make_ai_tier(**kwargs):
    return AIStrategyTier(FakeLLMClient(**kwargs), timeout_seconds=5)


# ── Tests ────────────────────────────────────────────────────────────────────


class TestHelpers:
    @pytest.mark.parametrize(
        "rsi,hist,expected",
        [(60, 5, 40), (52, 2, 35), (40, -1, 25), (50, 0, 30), (60, -1, 25), (44, 1, 25)],
    )
    def test_entry_ratio(self, rsi, hist, expected):
        assert entry_ratio_for(rsi, hist) == expected

    def test_stop_loss_percent(self):
        assert stop_loss_percent(10000, 9700) == -3.0

    @pytest.mark.parametrize(
        "current,target1",
        [(10000, 10300), (10000, 10001), (10000, 10000.5), (10300, 10300), (10500, 10300)],
    )
    def test_trigger_price_below_target(self, current, target1):
        assert scenario_trigger_price(current, target1) < target1

    def test_trigger_price_is_midpoint(self):
        assert scenario_trigger_price(10000, 10300) == 10150

    def test_parse_strips_code_fence(self):
        body = "```json\n" + json.dumps({"a": 1}) + "\n```"
        assert parse_json_object(body) == {"a": 1}

    @pytest.mark.parametrize("body", ["", "not json", "[1, 2]", "```\n\"text\"\n```"])
    def test_parse_rejects_non_objects(self, body):
        with pytest.raises(MalformedResponse):
            parse_json_object(body)


class TestAIStrategyTier:
    def test_unconfigured_is_unavailable(self):
        assert _make_ai_tier(configured=False).is_available() is False

    def test_provider(self):
        assert _make_ai_tier().provider == LLMProvider.OPENAI
        assert _make_ai_tier(configured=False).provider is None

    @pytest.mark.asyncio
    async def test_valid_response(self, valid_doc):
        tier = _make_ai_tier(content=json.dumps(valid_doc))
        result = await tier.attempt(make_context())
        assert result.success is True
        assert result.source == StrategySource.AI
        assert result.confidence == AI_CONFIDENCE
        assert result.metadata.ai_model == "fake-model"
        assert result.metadata.tokens_used == 1200
        assert result.metadata.validation_passed is True
        assert result.metadata.fixed_fields is None

    @pytest.mark.asyncio
    async def test_repaired_response_has_lower_confidence(self, valid_doc):
        valid_doc["phase1"]["entryRatio"] = 70
        tier = _make_ai_tier(content=json.dumps(valid_doc))
        result = await tier.attempt(make_context())
        assert result.success is True
        assert result.confidence == AI_REPAIRED_CONFIDENCE
        assert result.metadata.fixed_fields == ["phase1.entryRatio"]
        assert result.strategy.phase1.entry_ratio == 50

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        tier = _make_ai_tier(error=ConnectionError("connection reset"))
        result = await tier.attempt(make_context())
        assert result.success is False
        assert result.strategy is None
        assert result.failure_kind == FailureKind.TRANSPORT_FAILURE
        assert result.metadata.validation_passed is None
        assert "connection reset" in result.errors[0]

    @pytest.mark.asyncio
    async def test_timeout_is_transport_failure(self, valid_doc):
        tier = AIStrategyTier(
            FakeLLMClient(content=json.dumps(valid_doc), delay=1.0), timeout_seconds=0.01
        )
        result = await tier.attempt(make_context())
        assert result.success is False
        assert result.failure_kind == FailureKind.TRANSPORT_FAILURE
        assert "timed out" in result.errors[0]

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        tier = _make_ai_tier(content="Here is your strategy: buy low, sell high.")
        result = await tier.attempt(make_context())
        assert result.success is False
        assert result.failure_kind == FailureKind.MALFORMED_RESPONSE
        assert result.metadata.tokens_used == 1200

    @pytest.mark.asyncio
    async def test_schema_violation(self, valid_doc):
        del valid_doc["phase2"]
        tier = _make_ai_tier(content=json.dumps(valid_doc))
        result = await tier.attempt(make_context())
        assert result.success is False
        assert result.failure_kind == FailureKind.SCHEMA_VIOLATION
        assert result.metadata.validation_passed is False
        assert result.metadata.validation_errors == result.errors
        assert any(e.startswith("phase2") for e in result.errors)


class TestRuleBasedStrategyTier:
    @pytest.mark.asyncio
    async def test_bullish_context(self):
        context = make_context(rsi=60, macd=12, macd_signal=7)
        result = await RuleBasedStrategyTier().attempt(context)
        assert result.success is True
        assert result.confidence == RULE_BASED_CONFIDENCE
        assert result.metadata.rule_version == RULE_VERSION
        strategy = result.strategy
        assert strategy.phase1.entry_ratio == 40
        assert strategy.phase1.stop_loss.price == 9700
        assert strategy.phase1.stop_loss.percent == -3.0
        assert strategy.phase2.bullish.action_ratio == 30
        assert strategy.phase2.bearish.exit_ratio == 70
        assert strategy.phase3.target1.price == "10,300 KRW"
        assert strategy.phase3.target2.exit_ratio == 100

    @pytest.mark.asyncio
    async def test_defaults_for_missing_indicators(self):
        context = make_context(indicator=None, rsi=None, macd=None, macd_signal=None)
        result = await RuleBasedStrategyTier().attempt(context)
        assert result.strategy.phase1.entry_ratio == 30

    def test_reasoning_covers_four_factors(self):
        strategy = RuleBasedStrategyTier().build(make_context(rsi=25))
        reasoning = strategy.phase1.reasoning
        for marker in ("1) Technical", "2) Trend", "3) Support/resistance", "4) Volume"):
            assert marker in reasoning
        assert "oversold" in reasoning

    def test_trigger_price_in_bullish_condition(self):
        strategy = RuleBasedStrategyTier().build(make_context())
        assert "10,150 KRW" in strategy.phase2.bullish.condition

    def test_stop_above_entry_is_rejected(self):
        with pytest.raises(ValidationError):
            RuleBasedStrategyTier().build(make_context(stop=11000))


class TestFallbackStrategyTier:
    @pytest.mark.asyncio
    async def test_minimal_plan(self):
        result = await FallbackStrategyTier().attempt(make_context())
        assert result.success is True
        assert result.confidence == FALLBACK_CONFIDENCE
        assert result.strategy.phase1.entry_ratio == 30
        assert result.strategy.phase2.bullish.action_ratio == 20
        assert result.strategy.phase2.bearish.exit_ratio == 100
        assert "3-7 days" in result.strategy.phase1.reasoning

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stop,expected", [(11000, 0.0), (1000, -50.0), (9500, -5.0)])
    async def test_stop_percent_clamped(self, stop, expected):
        result = await FallbackStrategyTier().attempt(make_context(stop=stop))
        assert result.success is True
        assert result.strategy.phase1.stop_loss.percent == expected
