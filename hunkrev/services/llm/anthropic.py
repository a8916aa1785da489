from typing import Any

import anthropic
import structlog

from hunkrev.core.exceptions import LLMError, LLMProviderUnavailableError, LLMTimeoutError
from hunkrev.services.llm.base import GenerationConfig, LLMCompletion, LLMProvider

logger = structlog.get_logger()

# Pricing per 1M tokens
ANTHROPIC_PRICING = {
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    "claude-3-5-sonnet-20241022": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
    "claude-3-haiku-20240307": {"input": 0.25, "output": 1.25},
}


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider."""

    def __init__(
        self,
        config: GenerationConfig,
        api_key: str | None = None,
        client: Any = None,
    ) -> None:
        super().__init__(config)
        self._api_key = api_key
        self._client: Any = client

    @property
    def name(self) -> str:
        return "anthropic"

    def _get_client(self) -> Any:
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            if not self.is_available():
                raise LLMProviderUnavailableError("Anthropic API key not configured")

            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def is_available(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = ANTHROPIC_PRICING.get(
            self.model,
            {"input": 3.00, "output": 15.00},  # Default to Sonnet pricing
        )
        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    async def complete(self, prompt: str) -> LLMCompletion:
        """Review a hunk using Claude.

        Claude has no JSON response mode and no frequency/presence penalties;
        the prompt alone pins the output format. ``top_p`` is not sent either,
        since recent Claude models reject it alongside ``temperature``.
        """
        client = self._get_client()

        logger.debug("Sending review request to Anthropic", model=self.model)

        try:
            message = await client.messages.create(
                model=self.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as e:
            raise LLMTimeoutError(f"Anthropic request timed out: {e}") from e
        except anthropic.AnthropicError as e:
            logger.error("Anthropic API error", error=str(e))
            raise LLMError(f"Anthropic API error: {e}") from e

        text_blocks = [
            block.text for block in message.content if getattr(block, "type", "text") == "text"
        ]

        return LLMCompletion(
            text="".join(text_blocks) if text_blocks else None,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
