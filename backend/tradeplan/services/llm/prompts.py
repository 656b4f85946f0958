"""
LLM Prompt Templates

Structured prompts for the AI strategy tier.

CRITICAL RULES (enforced in all prompts):
- LLM does NO math - every price, percentage and level is precomputed here
- Output is a single JSON document in the InvestmentStrategy shape
- Every reason must cite a concrete technical basis
"""

import math
import re

from tradeplan.schemas.market import HORIZON_LABELS, format_price
from tradeplan.schemas.strategy import StrategyGenerationContext

# Only this many trailing candles are read, so the prompt size is bounded
PROMPT_CANDLE_WINDOW = 20

# =============================================================================
# STRATEGY PROMPTS
# =============================================================================

SYSTEM_PROMPT = """You are a quantitative trader with ten years of experience.
State the concrete values of technical indicators (RSI, MACD, moving averages, ...) and what they mean,
give quantitative criteria and ratios for every buy and sell point,
and name the basis of every target price (Fibonacci, resistance zones, Bollinger bands, ...).
Respond with a practical investment strategy as JSON only."""

STRATEGY_JSON_TEMPLATE = """{{
  "phase1": {{
    "entryRatio": 25~40 (number),
    "entryTiming": "concrete entry timing (e.g. RSI holding 55, two candles after a MACD golden cross, MA20 support confirmed)",
    "reasoning": "four explicit factors:\\n1) Technical: RSI/MACD values and meaning\\n2) Trend: moving-average alignment\\n3) Support/resistance: where price sits\\n4) Volume: volume change and market interest",
    "stopLoss": {{
      "price": {stop_loss_price},
      "percent": {stop_loss_percent},
      "timing": "stop condition (e.g. close below MA20, RSI under 30)",
      "reason": "stop-loss basis (e.g. Fibonacci 38.2% support, below the 20-candle low)"
    }}
  }},
  "phase2": {{
    "bullish": {{
      "condition": "concrete bullish condition (e.g. MACD histogram rising three candles, volume above 120% of average)",
      "action": "add to position",
      "actionRatio": 20~40 (number, relative to first entry),
      "reason": "basis for adding"
    }},
    "sideways": {{
      "condition": "concrete sideways condition (e.g. price within +/-2% for three days, RSI 40~60)",
      "action": "hold, or take partial profit and wait to re-enter",
      "reason": "basis for the sideways response"
    }},
    "bearish": {{
      "condition": "concrete bearish condition (e.g. break below MA20, MACD dead cross, RSI under 40)",
      "action": "partial sell or full exit",
      "exitRatio": 50~100 (number, 50 = half, 100 = full exit),
      "reason": "basis for the bearish response"
    }}
  }},
  "phase3": {{
    "target1": {{
      "price": "{target_price1}",
      "action": "take 50% profit and set a trailing stop",
      "exitRatio": 40~60 (number),
      "reason": "required basis for target 1 (e.g. Fibonacci 61.8%, 20-candle high breakout, upper Bollinger band)"
    }},
    "target2": {{
      "price": "{target_price2}",
      "action": "take the rest or trail the stop for maximum profit",
      "exitRatio": 40~100 (number),
      "reason": "required basis for target 2 (e.g. Fibonacci 161.8% extension, prior high resistance)"
    }}
  }}
}}"""

STRATEGY_USER_PROMPT_TEMPLATE = """[Symbol] {symbol_name} ({symbol_code})
Current price: {current_price}
Horizon: {horizon_label} (volatility: {volatility})

[Technical indicators]
1. RSI: {rsi:.1f} - {rsi_status}
   -> {rsi_reading}

2. MACD: {macd:.2f} / Signal: {macd_signal:.2f} (diff: {macd_diff:.2f})
   -> State: {macd_status}
   -> Recently: {macd_momentum}

3. Moving averages: {trend_status}
   - MA5: {ma5:.0f} (price {ma5_distance})
   - MA20: {ma20:.0f} (price {ma20_distance})
   - MA60: {ma60:.0f} (price {ma60_distance})

4. Volume: {volume} ({volume_vs_avg} of average)
   -> {volume_status}

[Price levels]
- {window}-candle high: {recent_high} (resistance)
- {window}-candle low: {recent_low} (support)
- Fibonacci 23.6%: {fib236:.0f}
- Fibonacci 38.2%: {fib382:.0f}
- Fibonacci 61.8%: {fib618:.0f}

[Targets]
Entry: {entry_price}
Target 1: {target_price1} ({target1_delta}) - basis required
Target 2: {target_price2} ({target2_delta}) - basis required
Stop loss: {stop_loss_price} ({stop_loss_delta})
{historical_line}
[Required considerations]
Technical analysis alone is not enough. Consider:
1. Short-term events: earnings, policy or sector news within {horizon_label} raise volatility
2. Sector flow: sector momentum affects the individual name
3. Market sentiment: macro events (rate decisions) within the horizon widen risk
-> Include a caveat such as "check short-term issues and sector risk" in reasoning

===========================================
Generate the JSON strategy in this format:
===========================================

{json_template}

===========================================
Rules:
1. All ratios are plain numbers (no strings)
2. Every "reason" cites a concrete basis (at least 10 characters)
3. Targets cite Fibonacci / resistance / moving-average evidence
4. Mention concrete RSI/MACD values when citing them
5. Add/sell conditions use quantitative criteria (e.g. "RSI above 60", "volume above 120%")
6. Output JSON only, no other text
==========================================="""


def _rsi_status(rsi: float) -> str:
    if rsi > 70:
        return "overbought (selling pressure expected)"
    if rsi > 60:
        return "strong (buyers dominant)"
    if rsi > 50:
        return "neutral-up (buyers ahead)"
    if rsi > 40:
        return "neutral-down (sellers ahead)"
    if rsi > 30:
        return "weak (selling pressure)"
    return "oversold (rebound possible)"


def _macd_status(macd: float, diff: float) -> str:
    if macd > 0 and diff > 0:
        return "golden cross above zero (strong buy signal)"
    if macd > 0 and diff < 0:
        return "dead cross above zero (caution)"
    if macd < 0 and diff > 0:
        return "golden cross below zero (rebound attempt)"
    return "dead cross below zero (weakness continues)"


def _trend_status(price: float, ma5: float, ma20: float, ma60: float) -> str:
    if price > ma5 > ma20 > ma60:
        return "bullish alignment (5-20-60, strong uptrend)"
    if price < ma5 < ma20 < ma60:
        return "bearish alignment (5-20-60, strong downtrend)"
    if price > ma20 > ma60:
        return "partial bullish alignment (20-60, medium-term uptrend)"
    return "mixed (no clear direction)"


def _pct_delta(value: float, base: float) -> str:
    if base == 0:
        return "n/a"
    pct = (value - base) / base * 100
    return f"{pct:+.1f}%"


def build_strategy_prompt(context: StrategyGenerationContext) -> str:
    """
    Build the user prompt for one strategy generation.

    Pure: reads only the context, and at most the last 20 candles of it.
    """
    current_price = context.current_price
    ind = context.indicator.resolve(current_price)
    window = context.candles[-PROMPT_CANDLE_WINDOW:] or [context.latest_candle]

    volume = context.latest_candle.volume
    avg_volume = sum(c.volume for c in window) / len(window)
    if avg_volume > 0:
        volume_vs_avg = f"{volume / avg_volume * 100:.0f}%"
        if volume > avg_volume * 1.2:
            volume_status = "volume surge (rising interest)"
        elif volume < avg_volume * 0.8:
            volume_status = "volume decline (fading interest)"
        else:
            volume_status = "average level"
    else:
        volume_vs_avg = "n/a"
        volume_status = "no volume history"

    recent_high = max(c.high for c in window)
    recent_low = min(c.low for c in window)
    price_range = recent_high - recent_low

    macd_diff = ind.macd_histogram
    if abs(macd_diff) < 0.5:
        macd_momentum = "near the signal line"
    elif macd_diff > 0:
        macd_momentum = "upward momentum strengthening"
    else:
        macd_momentum = "downward momentum strengthening"

    if ind.rsi > 50:
        rsi_reading = f"{ind.rsi - 50:.1f}p above 50, buyers ahead"
    else:
        rsi_reading = f"{50 - ind.rsi:.1f}p below 50, sellers ahead"

    historical_line = ""
    hc = context.historical_context
    if hc is not None:
        historical_line = (
            f"\n[Backtest] success rate {hc.success_rate}%, "
            f"average return {hc.avg_return}% over {hc.total_cases} similar cases\n"
        )

    stop_loss_percent = round(
        (context.stop_loss_price - context.entry_price) / context.entry_price * 100, 1
    )
    horizon_label = HORIZON_LABELS[context.investment_horizon]

    json_template = STRATEGY_JSON_TEMPLATE.format(
        stop_loss_price=context.stop_loss_price,
        stop_loss_percent=stop_loss_percent,
        target_price1=format_price(context.target_price1),
        target_price2=format_price(context.target_price2),
    )

    return STRATEGY_USER_PROMPT_TEMPLATE.format(
        symbol_name=context.symbol.name,
        symbol_code=context.symbol.code,
        current_price=format_price(current_price),
        horizon_label=horizon_label,
        volatility=context.volatility_level.value,
        rsi=ind.rsi,
        rsi_status=_rsi_status(ind.rsi),
        rsi_reading=rsi_reading,
        macd=ind.macd,
        macd_signal=ind.macd_signal,
        macd_diff=macd_diff,
        macd_status=_macd_status(ind.macd, macd_diff),
        macd_momentum=macd_momentum,
        trend_status=_trend_status(current_price, ind.ma5, ind.ma20, ind.ma60),
        ma5=ind.ma5,
        ma20=ind.ma20,
        ma60=ind.ma60,
        ma5_distance=_pct_delta(current_price, ind.ma5),
        ma20_distance=_pct_delta(current_price, ind.ma20),
        ma60_distance=_pct_delta(current_price, ind.ma60),
        volume=f"{volume:,.0f}",
        volume_vs_avg=volume_vs_avg,
        volume_status=volume_status,
        window=len(window),
        recent_high=format_price(recent_high),
        recent_low=format_price(recent_low),
        fib236=recent_low + price_range * 0.236,
        fib382=recent_low + price_range * 0.382,
        fib618=recent_low + price_range * 0.618,
        entry_price=format_price(context.entry_price),
        target_price1=format_price(context.target_price1),
        target_price2=format_price(context.target_price2),
        stop_loss_price=format_price(context.stop_loss_price),
        target1_delta=_pct_delta(context.target_price1, context.entry_price),
        target2_delta=_pct_delta(context.target_price2, context.entry_price),
        stop_loss_delta=_pct_delta(context.stop_loss_price, context.entry_price),
        historical_line=historical_line,
        json_template=json_template,
    )


_HANGUL = re.compile(r"[가-힣]")
_WORD = re.compile(r"[a-zA-Z]+")
_NUMBER = re.compile(r"\d+")


def estimate_tokens(prompt: str) -> int:
    """Rough token estimate: 1 per word, 1.5 per Hangul syllable, 0.5 per number."""
    hangul = len(_HANGUL.findall(prompt))
    words = len(_WORD.findall(prompt))
    numbers = len(_NUMBER.findall(prompt))
    return math.ceil(hangul * 1.5 + words + numbers * 0.5)


def get_prompt_summary(prompt: str) -> dict:
    """Size summary of a prompt, for logging."""
    return {
        "length": len(prompt),
        "estimated_tokens": estimate_tokens(prompt),
        "lines": len(prompt.split("\n")),
    }
