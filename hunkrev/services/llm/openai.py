from typing import Any

import openai
import structlog

from hunkrev.core.exceptions import LLMError, LLMProviderUnavailableError, LLMTimeoutError
from hunkrev.services.llm.base import GenerationConfig, LLMCompletion, LLMProvider

logger = structlog.get_logger()

# Pricing per 1M tokens
OPENAI_PRICING = {
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4.1": {"input": 2.00, "output": 8.00},
    "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    "gpt-4-turbo": {"input": 10.00, "output": 30.00},
    "gpt-4-1106-preview": {"input": 10.00, "output": 30.00},
}

# Models that accept response_format={"type": "json_object"}
JSON_MODE_MODELS = ("gpt-4-1106-preview", "gpt-3.5-turbo-1106", "gpt-3.5-turbo-0125")
JSON_MODE_PREFIXES = ("gpt-4-turbo", "gpt-4o", "gpt-4.1")


def supports_json_mode(model: str) -> bool:
    name = model.lower()
    return name in JSON_MODE_MODELS or name.startswith(JSON_MODE_PREFIXES)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider."""

    def __init__(
        self,
        config: GenerationConfig,
        api_key: str | None = None,
        base_url: str | None = None,
        client: Any = None,
    ) -> None:
        super().__init__(config)
        self._api_key = api_key
        self._base_url = base_url
        self._client: Any = client

    @property
    def name(self) -> str:
        return "openai"

    def is_available(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = OPENAI_PRICING.get(self.model)
        if pricing is None:
            return 0.0
        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    def _get_client(self) -> Any:
        """Lazy initialization of the OpenAI client."""
        if self._client is None:
            if not self.is_available():
                raise LLMProviderUnavailableError("OpenAI API key not configured")

            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def use_json_mode(self) -> bool:
        if self.config.json_mode is not None:
            return self.config.json_mode
        return supports_json_mode(self.model)

    def build_request(self, prompt: str) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "top_p": self.config.top_p,
            "frequency_penalty": self.config.frequency_penalty,
            "presence_penalty": self.config.presence_penalty,
            "messages": [{"role": "system", "content": prompt}],
        }
        if self.use_json_mode():
            request["response_format"] = {"type": "json_object"}
        return request

    async def complete(self, prompt: str) -> LLMCompletion:
        client = self._get_client()

        logger.debug("Sending review request to OpenAI", model=self.model)

        try:
            response = await client.chat.completions.create(**self.build_request(prompt))
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(f"OpenAI request timed out: {e}") from e
        except openai.OpenAIError as e:
            logger.error("OpenAI API error", error=str(e))
            raise LLMError(f"OpenAI API error: {e}") from e

        text = None
        if response.choices:
            text = response.choices[0].message.content

        usage = getattr(response, "usage", None)
        return LLMCompletion(
            text=text,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
