"""Tests for the tiered StrategyGenerator."""

import json

import pytest

from tradeplan.schemas.strategy import FailureKind, StrategyResult, StrategySource
from tradeplan.services.monitoring import MonitoringService
from tradeplan.services.strategy.generator import StrategyGenerator, build_default_tiers
from tradeplan.services.strategy.tiers import (
    AIStrategyTier,
    FallbackStrategyTier,
    RuleBasedStrategyTier,
    StrategyTier,
)

from conftest import FakeLLMClient, make_context


# ── Helpers ──────────────────────────────────────────────────────────────────


class ExplodingTier(StrategyTier):
    source = StrategySource.RULE_BASED

    async def attempt(self, context):
        raise RuntimeError("boom")


class FailingTier(StrategyTier):
    source = StrategySource.FALLBACK

    async def attempt(self, context):
        return StrategyResult(
            success=False,
            source=self.source,
            confidence=0.0,
            errors=["no plan"],
            failure_kind=FailureKind.INTERNAL_EXCEPTION,
        )


def _make_generator(llm_client, monitoring=None):
    tiers = [
        AIStrategyTier(llm_client, timeout_seconds=5),
        RuleBasedStrategyTier(),
        FallbackStrategyTier(),
    ]
    return StrategyGenerator(tiers, monitoring=monitoring or MonitoringService())


# ── Tests ────────────────────────────────────────────────────────────────────


class TestGenerate:
    @pytest.mark.asyncio
    async def test_ai_success(self, valid_doc):
        generator = _make_generator(FakeLLMClient(content=json.dumps(valid_doc)))
        result = await generator.generate(make_context())
        assert result.success is True
        assert result.source == StrategySource.AI
        assert result.confidence == 0.9
        assert result.metadata.attempted_sources == [StrategySource.AI]
        assert result.metadata.generation_time_ms >= 0

    @pytest.mark.asyncio
    async def test_unconfigured_ai_is_skipped(self):
        client = FakeLLMClient(configured=False)
        monitoring = MonitoringService()
        result = await _make_generator(client, monitoring).generate(make_context())
        assert result.source == StrategySource.RULE_BASED
        assert result.confidence == 0.6
        assert result.metadata.attempted_sources == [StrategySource.RULE_BASED]
        assert client.calls == 0
        assert monitoring.get_metrics().ai.total_attempts == 0

    @pytest.mark.asyncio
    async def test_ai_failure_falls_through(self):
        monitoring = MonitoringService()
        generator = _make_generator(FakeLLMClient(content="not json"), monitoring)
        result = await generator.generate(make_context())
        assert result.success is True
        assert result.source == StrategySource.RULE_BASED
        assert result.metadata.attempted_sources == [
            StrategySource.AI,
            StrategySource.RULE_BASED,
        ]
        metrics = monitoring.get_metrics()
        assert metrics.ai.failure_count == 1
        assert metrics.rule_based.success_count == 1
        assert metrics.fallback.total_attempts == 0

    @pytest.mark.asyncio
    async def test_rule_based_error_reaches_fallback(self):
        monitoring = MonitoringService()
        generator = _make_generator(FakeLLMClient(configured=False), monitoring)
        # Stop above entry cannot satisfy the rule-based stop-loss schema
        result = await generator.generate(make_context(stop=11000))
        assert result.success is True
        assert result.source == StrategySource.FALLBACK
        assert result.confidence == 0.3
        assert result.metadata.attempted_sources == [
            StrategySource.RULE_BASED,
            StrategySource.FALLBACK,
        ]
        assert monitoring.get_metrics().rule_based.failure_count == 1

    @pytest.mark.asyncio
    async def test_each_attempt_tracked_once(self):
        monitoring = MonitoringService()
        generator = _make_generator(FakeLLMClient(error=TimeoutError("slow")), monitoring)
        for _ in range(3):
            await generator.generate(make_context())
        metrics = monitoring.get_metrics()
        assert metrics.ai.total_attempts == 3
        assert metrics.rule_based.total_attempts == 3
        assert metrics.total_attempts == 6

    @pytest.mark.asyncio
    async def test_all_tiers_failing_never_raises(self):
        generator = StrategyGenerator(
            [ExplodingTier(), FailingTier()], monitoring=MonitoringService()
        )
        result = await generator.generate(make_context())
        assert result.success is False
        assert result.strategy is None
        assert result.failure_kind == FailureKind.INTERNAL_EXCEPTION
        assert result.metadata.attempted_sources == [
            StrategySource.RULE_BASED,
            StrategySource.FALLBACK,
        ]
        assert any("boom" in e for e in result.errors)
        assert any("no plan" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_no_tiers(self):
        result = await StrategyGenerator([], monitoring=MonitoringService()).generate(
            make_context()
        )
        assert result.success is False
        assert result.metadata.attempted_sources == []


class TestService:
    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await _make_generator(FakeLLMClient(configured=False)).health_check() is True
        assert await StrategyGenerator([]).health_check() is False

    @pytest.mark.asyncio
    async def test_execute_delegates_to_generate(self):
        generator = _make_generator(FakeLLMClient(configured=False))
        result = await generator.execute(make_context())
        assert result.source == StrategySource.RULE_BASED

    def test_default_tier_order(self):
        tiers = build_default_tiers(FakeLLMClient(configured=False))
        assert [t.source for t in tiers] == [
            StrategySource.AI,
            StrategySource.RULE_BASED,
            StrategySource.FALLBACK,
        ]
