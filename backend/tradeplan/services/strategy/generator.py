"""
Strategy Generator Implementation

Runs the tier chain for one StrategyGenerationContext:
    AI (if configured) → Rule-based → Fallback

The first successful tier wins. generate() never raises.
"""

import logging
import time
from typing import Optional, Sequence

from tradeplan.schemas.strategy import (
    FailureKind,
    StrategyGenerationContext,
    StrategyMetadata,
    StrategyResult,
    StrategySource,
)
from tradeplan.services.base import BaseService
from tradeplan.services.monitoring import MonitoringService, get_monitoring_service
from tradeplan.services.strategy.tiers import (
    AIStrategyTier,
    FallbackStrategyTier,
    RuleBasedStrategyTier,
    StrategyTier,
)

logger = logging.getLogger(__name__)


class StrategyGenerator(BaseService[StrategyGenerationContext, StrategyResult]):
    """
    Tiered strategy orchestrator.

    Unavailable tiers are skipped and not recorded. Every attempted tier is
    appended to attempted_sources and tracked exactly once by monitoring.
    """

    def __init__(
        self,
        tiers: Sequence[StrategyTier],
        monitoring: Optional[MonitoringService] = None,
    ):
        self._tiers = list(tiers)
        self._monitoring = monitoring

    @property
    def monitoring(self) -> MonitoringService:
        """Lazy initialization of monitoring service."""
        if self._monitoring is None:
            self._monitoring = get_monitoring_service()
        return self._monitoring

    @property
    def name(self) -> str:
        return "StrategyGenerator"

    @property
    def tiers(self) -> list[StrategyTier]:
        return list(self._tiers)

    async def execute(self, input_data: StrategyGenerationContext) -> StrategyResult:
        return await self.generate(input_data)

    async def health_check(self) -> bool:
        return any(tier.is_available() for tier in self._tiers)

    async def generate(self, context: StrategyGenerationContext) -> StrategyResult:
        started = time.perf_counter()
        attempted: list[StrategySource] = []
        errors: list[str] = []

        logger.info(
            f"Generating strategy for {context.symbol.name} ({context.symbol.code}, "
            f"{context.investment_horizon.value})"
        )

        for tier in self._tiers:
            if not tier.is_available():
                logger.debug(f"Skipping {tier.source.value} tier (not configured)")
                continue

            attempted.append(tier.source)
            result = await self._run_tier(tier, context)
            self.monitoring.track(result)

            if result.success:
                elapsed = round((time.perf_counter() - started) * 1000, 2)
                logger.info(
                    f"Strategy generated by {tier.source.value} tier "
                    f"({elapsed}ms, confidence {result.confidence})"
                )
                return result.model_copy(
                    update={
                        "metadata": result.metadata.model_copy(
                            update={
                                "generation_time_ms": elapsed,
                                "attempted_sources": list(attempted),
                            }
                        )
                    }
                )

            logger.warning(
                f"{tier.source.value} tier failed: {', '.join(result.errors or ['unknown error'])}"
            )
            errors.extend(f"{tier.source.value}: {e}" for e in (result.errors or []))

        elapsed = round((time.perf_counter() - started) * 1000, 2)
        logger.error(f"All strategy tiers failed for {context.symbol.code}")
        return StrategyResult(
            success=False,
            source=attempted[-1] if attempted else StrategySource.FALLBACK,
            confidence=0.0,
            metadata=StrategyMetadata(
                generation_time_ms=elapsed,
                attempted_sources=attempted,
            ),
            errors=errors or ["No strategy tier available"],
            failure_kind=FailureKind.INTERNAL_EXCEPTION,
        )

    async def _run_tier(
        self, tier: StrategyTier, context: StrategyGenerationContext
    ) -> StrategyResult:
        """Run one tier, converting any exception into a failure outcome."""
        try:
            return await tier.attempt(context)
        except Exception as e:
            logger.exception(f"{tier.source.value} tier raised: {e}")
            return StrategyResult(
                success=False,
                source=tier.source,
                confidence=0.0,
                errors=[f"{type(e).__name__}: {e}"],
                failure_kind=FailureKind.INTERNAL_EXCEPTION,
            )


def build_default_tiers(llm_client=None) -> list[StrategyTier]:
    """The standard [ai, rule-based, fallback] chain."""
    from tradeplan.services.llm.client import get_llm_client

    client = llm_client or get_llm_client()
    return [
        AIStrategyTier(client),
        RuleBasedStrategyTier(),
        FallbackStrategyTier(),
    ]


# Singleton instance
_strategy_generator: Optional[StrategyGenerator] = None


def get_strategy_generator() -> StrategyGenerator:
    """Get or create strategy generator singleton."""
    global _strategy_generator
    if _strategy_generator is None:
        _strategy_generator = StrategyGenerator(
            tiers=build_default_tiers(),
            monitoring=get_monitoring_service(),
        )
    return _strategy_generator
