"""
Strategy Tiers

Each tier is one way of producing an InvestmentStrategy:

    AIStrategyTier         LLM completion, schema-validated (0.9 / 0.8 repaired)
    RuleBasedStrategyTier  indicator-threshold rules, deterministic (0.6)
    FallbackStrategyTier   fixed minimal plan, cannot fail (0.3)

A tier reports unavailability through is_available() (skipped, not a failure)
and otherwise returns a StrategyResult from attempt().
"""

import asyncio
import json
import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Optional

from tradeplan.schemas.market import HORIZON_LABELS, format_price
from tradeplan.schemas.strategy import (
    InvestmentStrategy,
    Phase1Strategy,
    Phase2Strategy,
    Phase3Strategy,
    ScenarioAction,
    StopLossInfo,
    StrategyGenerationContext,
    StrategyMetadata,
    StrategyResult,
    StrategySource,
    TargetAction,
)
from tradeplan.services.base import (
    MalformedResponse,
    SchemaViolation,
    TierError,
    TransportFailure,
)
from tradeplan.services.llm.client import LLMClient, LLMProvider
from tradeplan.services.llm.prompts import (
    SYSTEM_PROMPT,
    build_strategy_prompt,
    get_prompt_summary,
)
from tradeplan.services.strategy.validator import StrategyValidator

logger = logging.getLogger(__name__)

AI_CONFIDENCE = 0.9
AI_REPAIRED_CONFIDENCE = 0.8
RULE_BASED_CONFIDENCE = 0.6
FALLBACK_CONFIDENCE = 0.3

RULE_VERSION = "1.0.0"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def stop_loss_percent(entry_price: float, stop_loss_price: float) -> float:
    """Signed distance of the stop from entry, in percent, one decimal."""
    return round((stop_loss_price - entry_price) / entry_price * 100, 1)


def scenario_trigger_price(current_price: float, target_price1: float) -> int:
    """Midpoint between price and target 1, always strictly below target 1."""
    midpoint = math.floor((current_price + target_price1) / 2)
    return min(midpoint, math.ceil(target_price1) - 1)


def failure_result(
    source: StrategySource,
    error: TierError,
    metadata: Optional[StrategyMetadata] = None,
) -> StrategyResult:
    """Failed tier outcome carrying the error taxonomy."""
    errors = error.details.get("errors") or [error.message]
    return StrategyResult(
        success=False,
        source=source,
        confidence=0.0,
        metadata=metadata or StrategyMetadata(),
        errors=list(errors),
        failure_kind=error.kind,
    )


class StrategyTier(ABC):
    """One step of the generation chain."""

    source: StrategySource

    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def attempt(self, context: StrategyGenerationContext) -> StrategyResult:
        """Produce a strategy, or a failure result."""
        pass


# =============================================================================
# AI TIER
# =============================================================================


def parse_json_object(content: str) -> dict:
    """
    Decode a completion body into a JSON object.

    Tolerates a surrounding markdown code fence.

    Raises:
        MalformedResponse: body is not JSON, or not an object
    """
    text = (content or "").strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1]) if lines[-1].strip().startswith("```") else "\n".join(lines[1:])

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(
            "AIStrategyTier", f"Response is not valid JSON: {e}", {"preview": text[:200]}
        ) from e

    if not isinstance(parsed, dict):
        raise MalformedResponse(
            "AIStrategyTier", f"Response is JSON {type(parsed).__name__}, expected object"
        )
    return parsed


class AIStrategyTier(StrategyTier):
    """
    Strategy from one LLM completion.

    No retry and no provider chaining. The call is bounded by a timeout.
    """

    source = StrategySource.AI

    def __init__(
        self,
        llm_client: LLMClient,
        validator: Optional[StrategyValidator] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._llm_client = llm_client
        self._validator = validator or StrategyValidator()
        self._timeout = timeout_seconds or llm_client.config.timeout_seconds

    def is_available(self) -> bool:
        return self._llm_client.is_configured

    @property
    def provider(self) -> Optional[LLMProvider]:
        """Provider the completion goes to, or None without a credential."""
        return self._llm_client.get_active_provider()

    async def attempt(self, context: StrategyGenerationContext) -> StrategyResult:
        started = time.perf_counter()
        metadata = StrategyMetadata(ai_model=self._llm_client.model)

        try:
            prompt = build_strategy_prompt(context)
            summary = get_prompt_summary(prompt)
            logger.debug(
                f"Prompt for {context.symbol.code}: {summary['lines']} lines, "
                f"~{summary['estimated_tokens']} tokens"
            )

            try:
                response = await asyncio.wait_for(
                    self._llm_client.generate(
                        system_prompt=SYSTEM_PROMPT,
                        user_prompt=prompt,
                        response_format="json",
                    ),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError as e:
                raise TransportFailure(
                    self.__class__.__name__, f"LLM call timed out after {self._timeout}s"
                ) from e
            except Exception as e:
                raise TransportFailure(self.__class__.__name__, f"LLM call failed: {e}") from e

            metadata = metadata.model_copy(
                update={"ai_model": response.model, "tokens_used": response.total_tokens}
            )

            raw = parse_json_object(response.content)

            validation = self._validator.validate(raw, auto_fix=True)
            if not validation.success:
                metadata = metadata.model_copy(
                    update={"validation_passed": False, "validation_errors": validation.errors}
                )
                raise SchemaViolation(
                    self.__class__.__name__,
                    "Strategy failed schema validation after repair",
                    {"errors": validation.errors},
                )

        except TierError as e:
            logger.warning(f"AI strategy failed ({e.kind.value}): {e.message}")
            metadata = metadata.model_copy(update={"generation_time_ms": _elapsed_ms(started)})
            return failure_result(self.source, e, metadata)

        confidence = AI_REPAIRED_CONFIDENCE if validation.fixed else AI_CONFIDENCE
        if validation.fixed:
            logger.info(f"AI strategy repaired: {', '.join(validation.fixed_fields or [])}")

        return StrategyResult(
            success=True,
            strategy=validation.data,
            source=self.source,
            confidence=confidence,
            metadata=metadata.model_copy(
                update={
                    "generation_time_ms": _elapsed_ms(started),
                    "validation_passed": True,
                    "fixed_fields": validation.fixed_fields,
                }
            ),
        )


# =============================================================================
# RULE-BASED TIER
# =============================================================================


def entry_ratio_for(rsi: float, macd_histogram: float) -> int:
    """Initial position size (% of capital) from RSI and MACD histogram."""
    if rsi > 55 and macd_histogram > 0:
        return 40
    if rsi > 50 and macd_histogram > 0:
        return 35
    if rsi < 45 or macd_histogram < 0:
        return 25
    return 30


def build_reasoning(
    rsi: float,
    macd: float,
    macd_signal: float,
    current_price: float,
    ma20: float,
    ma60: float,
    volume_ratio: float,
) -> str:
    """Four-factor rationale: technical, trend, support/resistance, volume."""
    rsi_status = "overbought" if rsi > 70 else "oversold" if rsi < 30 else "neutral"
    macd_above = macd > macd_signal
    if current_price > ma20 > ma60:
        alignment = "bullish alignment (rising)"
    elif current_price < ma20 < ma60:
        alignment = "bearish alignment (falling)"
    else:
        alignment = "mixed"
    if volume_ratio > 1.5:
        volume_status = "surging"
    elif volume_ratio > 1.0:
        volume_status = "rising"
    else:
        volume_status = "falling"

    return (
        f"1) Technical: RSI {rsi:.2f} is in the {rsi_status} zone and MACD crossed "
        f"{'above' if macd_above else 'below'} its signal, a {'buy' if macd_above else 'sell'} signal.\n"
        f"2) Trend: price {format_price(current_price)} is "
        f"{'above' if current_price > ma20 else 'below'} MA20 ({ma20:.0f}); "
        f"moving averages show {alignment}.\n"
        f"3) Support/resistance: MA60 ({ma60:.0f}) acts as key "
        f"{'support' if current_price > ma60 else 'resistance'}.\n"
        f"4) Volume: {volume_ratio * 100:.0f}% of average, {volume_status}, "
        f"{'strengthening' if volume_ratio > 1 else 'weakening'} "
        f"{'buy' if volume_ratio > 1 else 'sell'} momentum."
    )


class RuleBasedStrategyTier(StrategyTier):
    """Deterministic strategy from indicator thresholds. No I/O."""

    source = StrategySource.RULE_BASED

    async def attempt(self, context: StrategyGenerationContext) -> StrategyResult:
        started = time.perf_counter()
        strategy = self.build(context)
        return StrategyResult(
            success=True,
            strategy=strategy,
            source=self.source,
            confidence=RULE_BASED_CONFIDENCE,
            metadata=StrategyMetadata(
                generation_time_ms=_elapsed_ms(started),
                rule_version=RULE_VERSION,
                validation_passed=True,
            ),
        )

    def build(self, context: StrategyGenerationContext) -> InvestmentStrategy:
        current_price = context.current_price
        ind = context.indicator.resolve(current_price)
        entry_ratio = entry_ratio_for(ind.rsi, ind.macd_histogram)
        stop_price = context.stop_loss_price

        phase1 = Phase1Strategy(
            entry_ratio=entry_ratio,
            entry_timing=f"Enter {entry_ratio}% at the current price {format_price(current_price)}",
            reasoning=build_reasoning(
                ind.rsi,
                ind.macd,
                ind.macd_signal,
                current_price,
                ind.ma20,
                ind.ma60,
                ind.volume_ratio,
            ),
            stop_loss=StopLossInfo(
                price=stop_price,
                percent=stop_loss_percent(context.entry_price, stop_price),
                timing=f"Stop out on a close below {format_price(stop_price)}",
                reason=(
                    f"Below the technical support at {format_price(stop_price)} "
                    "further downside is likely"
                ),
            ),
        )

        trigger = scenario_trigger_price(current_price, context.target_price1)
        box_low = math.floor(current_price * 0.98)
        box_high = math.floor(current_price * 1.02)
        phase2 = Phase2Strategy(
            bullish=ScenarioAction(
                condition=f"Breaks above {format_price(trigger)} AND RSI at or above 55",
                action="Add 30% of capital",
                action_ratio=30,
                reason="Add on confirmed upward momentum to maximise gains",
            ),
            sideways=ScenarioAction(
                condition=(
                    f"Range {format_price(box_low)} ~ {format_price(box_high)} "
                    "for two days or more"
                ),
                action="Hold the position and wait",
                reason="Wait for a further signal while direction is unclear",
            ),
            bearish=ScenarioAction(
                condition=f"Falls below {format_price(stop_price)} OR MACD keeps falling",
                action="Exit 70% of the position",
                exit_ratio=70,
                reason="Limit losses once the downtrend is confirmed",
            ),
        )

        phase3 = Phase3Strategy(
            target1=TargetAction(
                price=format_price(context.target_price1),
                action="Take profit on 50% of the position",
                exit_ratio=50,
                reason="Realise part of the gain at the first target",
            ),
            target2=TargetAction(
                price=format_price(context.target_price2),
                action="Take profit on the remaining position",
                exit_ratio=100,
                reason="Realise the full gain at the second target",
            ),
        )

        return InvestmentStrategy(phase1=phase1, phase2=phase2, phase3=phase3)


# =============================================================================
# FALLBACK TIER
# =============================================================================


class FallbackStrategyTier(StrategyTier):
    """Fixed minimal plan. Succeeds for any valid context."""

    source = StrategySource.FALLBACK

    async def attempt(self, context: StrategyGenerationContext) -> StrategyResult:
        started = time.perf_counter()
        return StrategyResult(
            success=True,
            strategy=self.build(context),
            source=self.source,
            confidence=FALLBACK_CONFIDENCE,
            metadata=StrategyMetadata(
                generation_time_ms=_elapsed_ms(started),
                validation_passed=True,
            ),
        )

    def build(self, context: StrategyGenerationContext) -> InvestmentStrategy:
        horizon = context.investment_horizon
        percent = stop_loss_percent(context.entry_price, context.stop_loss_price)
        percent = min(0.0, max(-50.0, percent))

        return InvestmentStrategy(
            phase1=Phase1Strategy(
                entry_ratio=30,
                entry_timing="Enter 30% at the current price",
                reasoning=f"Default {horizon.value} plan for {HORIZON_LABELS[horizon]}",
                stop_loss=StopLossInfo(
                    price=context.stop_loss_price,
                    percent=percent,
                    timing="On a close below the stop price",
                    reason="Stop loss for risk control",
                ),
            ),
            phase2=Phase2Strategy(
                bullish=ScenarioAction(
                    condition="Price rises",
                    action="Add 20% to the position",
                    action_ratio=20,
                    reason="Add once the uptrend is confirmed",
                ),
                sideways=ScenarioAction(
                    condition="Price moves sideways",
                    action="Hold the position",
                    reason="Wait while direction is unclear",
                ),
                bearish=ScenarioAction(
                    condition="Price falls below the stop",
                    action="Exit the whole position",
                    exit_ratio=100,
                    reason="Minimise losses",
                ),
            ),
            phase3=Phase3Strategy(
                target1=TargetAction(
                    price=format_price(context.target_price1),
                    action="Take profit on 50% of the position",
                    exit_ratio=50,
                    reason="Realise gains at the first target",
                ),
                target2=TargetAction(
                    price=format_price(context.target_price2),
                    action="Take profit on the remaining position",
                    exit_ratio=100,
                    reason="Full exit at the second target",
                ),
            ),
        )
