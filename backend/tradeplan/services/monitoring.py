"""
Strategy Generation Monitoring

CONTRACT:
    Input:  StrategyResult (one per attempted tier)
    Output: PerformanceMetrics snapshot

RESPONSIBILITIES:
    - Per-source attempt / success / failure counters
    - Rolling average generation time (last 100 samples per source)
    - AI token usage and cost estimate
    - Validation pass / fail / auto-fix counters
    - Warn on a high AI failure rate, log a summary every 10 attempts

All counter mutation happens under one lock, so concurrent generate() calls
can share a single instance.
"""

import logging
import threading
from collections import deque
from typing import Optional

from tradeplan.schemas.metrics import (
    CostEstimate,
    PerformanceMetrics,
    SourceStats,
    ValidationStats,
)
from tradeplan.schemas.strategy import StrategyResult, StrategySource

logger = logging.getLogger(__name__)

TIMING_WINDOW = 100
SUMMARY_EVERY = 10
AI_WARN_MIN_ATTEMPTS = 10
AI_WARN_SUCCESS_RATE = 70.0


def _rate(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round(part / whole * 100, 2)


class MonitoringService:
    """In-memory performance tracker for strategy generation."""

    def __init__(
        self,
        input_cost_per_million: float = 0.15,
        output_cost_per_million: float = 0.60,
        input_token_share: float = 0.25,
    ):
        self._lock = threading.Lock()
        self._input_cost_per_million = input_cost_per_million
        self._output_cost_per_million = output_cost_per_million
        self._input_token_share = input_token_share
        self._reset_state()

    def _reset_state(self) -> None:
        self._stats: dict[StrategySource, SourceStats] = {
            source: SourceStats() for source in StrategySource
        }
        self._times: dict[StrategySource, deque] = {
            source: deque(maxlen=TIMING_WINDOW) for source in StrategySource
        }
        self._tokens = 0
        self._validation = ValidationStats()

    def track(self, result: StrategyResult) -> None:
        """Record the outcome of one tier attempt."""
        meta = result.metadata

        with self._lock:
            stats = self._stats[result.source]
            stats.total_attempts += 1
            if result.success:
                stats.success_count += 1
                if meta.generation_time_ms > 0:
                    times = self._times[result.source]
                    times.append(meta.generation_time_ms)
                    stats.avg_generation_time_ms = round(sum(times) / len(times), 2)
            else:
                stats.failure_count += 1
            stats.success_rate = _rate(stats.success_count, stats.total_attempts)

            if result.source == StrategySource.AI and meta.tokens_used:
                self._tokens += meta.tokens_used

            if meta.validation_passed is not None:
                self._validation.total_validations += 1
                if meta.validation_passed:
                    self._validation.passed_count += 1
                    if meta.fixed_fields:
                        self._validation.auto_fixed_count += 1
                else:
                    self._validation.failed_count += 1
                self._validation.auto_fix_rate = _rate(
                    self._validation.auto_fixed_count, self._validation.total_validations
                )

            ai = self._stats[StrategySource.AI]
            warn_ai = (
                ai.total_attempts >= AI_WARN_MIN_ATTEMPTS
                and ai.success_rate < AI_WARN_SUCCESS_RATE
            )
            ai_snapshot = (ai.failure_count, ai.total_attempts, ai.success_rate)
            total = sum(s.total_attempts for s in self._stats.values())

        if warn_ai:
            failures, attempts, success_rate = ai_snapshot
            logger.warning(
                f"High AI strategy failure rate: {100 - success_rate:.1f}% ({failures}/{attempts})"
            )

        if total % SUMMARY_EVERY == 0:
            self.log_metrics_summary()

    def get_metrics(self) -> PerformanceMetrics:
        """Deep-copied snapshot of the current counters."""
        with self._lock:
            return PerformanceMetrics(
                ai=self._stats[StrategySource.AI].model_copy(),
                rule_based=self._stats[StrategySource.RULE_BASED].model_copy(),
                fallback=self._stats[StrategySource.FALLBACK].model_copy(),
                total_tokens_used=self._tokens,
                validation=self._validation.model_copy(),
            )

    def reset_metrics(self) -> None:
        with self._lock:
            self._reset_state()
        logger.info("Strategy generation metrics reset")

    def log_metrics_summary(self) -> None:
        m = self.get_metrics()
        logger.info("Strategy generation summary")
        logger.info(
            f"  AI: {m.ai.success_count}/{m.ai.total_attempts} "
            f"(success rate {m.ai.success_rate}%)"
        )
        if m.ai.avg_generation_time_ms > 0:
            logger.info(f"    avg generation time: {m.ai.avg_generation_time_ms:.0f}ms")
        if m.total_tokens_used > 0 and m.ai.success_count > 0:
            logger.info(
                f"    tokens: {m.total_tokens_used:,} "
                f"(avg {round(m.total_tokens_used / m.ai.success_count)}/success)"
            )
        if m.rule_based.total_attempts > 0:
            logger.info(
                f"  Rule-based: {m.rule_based.total_attempts} "
                f"(avg {m.rule_based.avg_generation_time_ms:.0f}ms)"
            )
        if m.fallback.total_attempts > 0:
            logger.info(f"  Fallback: {m.fallback.total_attempts}")
        logger.info(
            f"  Validation: {m.validation.passed_count}/{m.validation.total_validations} passed"
        )
        if m.validation.auto_fixed_count > 0:
            logger.info(
                f"    auto-fixed: {m.validation.auto_fixed_count} ({m.validation.auto_fix_rate}%)"
            )

    def calculate_cost(self) -> CostEstimate:
        """Estimate spend from cumulative AI tokens, split 25% input / 75% output."""
        with self._lock:
            total = self._tokens
        input_tokens = round(total * self._input_token_share)
        output_tokens = total - input_tokens
        input_cost = input_tokens / 1_000_000 * self._input_cost_per_million
        output_cost = output_tokens / 1_000_000 * self._output_cost_per_million
        return CostEstimate(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            input_cost=round(input_cost, 4),
            output_cost=round(output_cost, 4),
            total_cost=round(input_cost + output_cost, 4),
        )


# Singleton instance
_monitoring_service: Optional[MonitoringService] = None


def get_monitoring_service() -> MonitoringService:
    """Get or create monitoring service singleton."""
    global _monitoring_service
    if _monitoring_service is None:
        from tradeplan.core.config import get_strategy_config

        llm = get_strategy_config().llm
        _monitoring_service = MonitoringService(
            input_cost_per_million=llm.input_cost_per_million,
            output_cost_per_million=llm.output_cost_per_million,
        )
    return _monitoring_service
