"""
LLM Service

CONTRACT:
    Input:  StrategyGenerationContext (rendered into a prompt)
    Output: LLMResponse (raw completion text + token usage)

RESPONSIBILITIES:
    - Prompt construction (pure, bounded size)
    - Single-provider completion call (OpenAI or Anthropic)

CRITICAL RULES:
    - LLM does NO math - all prices and percentages are precomputed
    - No retry and no provider chaining; the caller falls back to rules

FALLBACK BEHAVIOR:
    - Without an API key the client reports is_configured = False and the
      AI strategy tier is skipped
"""

from tradeplan.services.llm.client import (
    LLMClient,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    get_llm_client,
)
from tradeplan.services.llm.prompts import (
    SYSTEM_PROMPT,
    build_strategy_prompt,
    estimate_tokens,
    get_prompt_summary,
)

__all__ = [
    # Client
    "LLMClient",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "get_llm_client",
    # Prompts
    "SYSTEM_PROMPT",
    "build_strategy_prompt",
    "estimate_tokens",
    "get_prompt_summary",
]
