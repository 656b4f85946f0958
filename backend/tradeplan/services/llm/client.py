"""
LLM Client Abstraction

Provides a unified interface for OpenAI and Anthropic Claude.
Exactly one provider is used per process, chosen by configuration.
There is no provider chaining and no retry: a failed call is reported to
the caller, which decides what to do next.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging

from tradeplan.core.config import LLMSettings

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    provider: LLMProvider
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: int = 1500
    temperature: float = 0.3
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, llm: LLMSettings) -> "LLMConfig":
        return cls(
            provider=LLMProvider(llm.provider),
            api_key=llm.api_key,
            model=llm.model,
            max_tokens=llm.max_tokens,
            temperature=llm.temperature,
            timeout_seconds=llm.timeout_seconds,
        )


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: LLMProvider
    usage: dict = field(default_factory=dict)

    @property
    def total_tokens(self) -> Optional[int]:
        if "total_tokens" in self.usage:
            return self.usage["total_tokens"]
        if "input_tokens" in self.usage or "output_tokens" in self.usage:
            return self.usage.get("input_tokens", 0) + self.usage.get("output_tokens", 0)
        return None


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client = None

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            import anthropic

            self._client = anthropic.AsyncAnthropic(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        """Generate response using Claude."""
        client = self._get_client()

        temp = temperature if temperature is not None else self.config.temperature
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens

        system = system_prompt
        if response_format == "json":
            # Claude has no JSON mode; ask for a bare object instead
            system = f"{system_prompt}\n\nRespond with a single JSON object and nothing else."

        try:
            response = await client.messages.create(
                model=self.config.model,
                max_tokens=tokens,
                temperature=temp,
                system=system,
                messages=[{"role": "user", "content": user_prompt}],
            )

            return LLMResponse(
                content=response.content[0].text,
                model=self.config.model,
                provider=LLMProvider.ANTHROPIC,
                usage={
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                },
            )
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client implementation."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client = None

    def _get_client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        """Generate response using GPT."""
        client = self._get_client()

        temp = temperature if temperature is not None else self.config.temperature
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens

        kwargs = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temp,
            "max_tokens": tokens,
        }

        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await client.chat.completions.create(**kwargs)

            usage = {}
            if response.usage is not None:
                usage = {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                }

            return LLMResponse(
                content=response.choices[0].message.content or "",
                model=self.config.model,
                provider=LLMProvider.OPENAI,
                usage=usage,
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise


class LLMClient:
    """
    Unified LLM client over the configured provider.

    is_configured is False when no credential is set for the provider; the
    AI strategy tier uses it to skip itself.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._provider: Optional[BaseLLMClient] = None
        self._setup_client()

    def _setup_client(self):
        if not self.config.api_key:
            logger.warning(
                f"No API key configured for {self.config.provider.value}. LLM features disabled."
            )
            return
        if self.config.provider == LLMProvider.ANTHROPIC:
            self._provider = AnthropicClient(self.config)
        else:
            self._provider = OpenAIClient(self.config)

    @property
    def is_configured(self) -> bool:
        return self._provider is not None

    @property
    def model(self) -> str:
        return self.config.model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        if self._provider is None:
            raise RuntimeError("No LLM provider configured")
        return await self._provider.generate(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=response_format,
        )

    def get_active_provider(self) -> Optional[LLMProvider]:
        """Get the currently active provider."""
        if self._provider is not None:
            return self.config.provider
        return None


# Singleton instance management
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create LLM client singleton."""
    global _llm_client
    if _llm_client is None:
        from tradeplan.core.config import get_strategy_config

        _llm_client = LLMClient(LLMConfig.from_settings(get_strategy_config().llm))
    return _llm_client
