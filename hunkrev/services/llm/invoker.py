import asyncio
import time
from typing import Literal

import structlog

from hunkrev.core.config import Settings, settings
from hunkrev.core.exceptions import LLMError, LLMProviderUnavailableError, LLMTimeoutError
from hunkrev.core.metrics import record_llm_request
from hunkrev.services.llm.anthropic import AnthropicProvider
from hunkrev.services.llm.base import GenerationConfig, LLMProvider
from hunkrev.services.llm.ollama import OllamaProvider
from hunkrev.services.llm.openai import OpenAIProvider

logger = structlog.get_logger()

ProviderName = Literal["openai", "anthropic", "ollama"]


def create_provider(
    name: ProviderName | None = None,
    config: GenerationConfig | None = None,
    app_settings: Settings | None = None,
) -> LLMProvider:
    """Build the single provider this process reviews with."""
    app_settings = app_settings or settings
    name = name or app_settings.llm_provider
    config = config or GenerationConfig.from_settings(app_settings)

    if name == "openai":
        api_key = app_settings.openai_api_key
        return OpenAIProvider(
            config,
            api_key=api_key.get_secret_value() if api_key else None,
            base_url=app_settings.openai_base_url,
        )
    if name == "anthropic":
        api_key = app_settings.anthropic_api_key
        return AnthropicProvider(
            config,
            api_key=api_key.get_secret_value() if api_key else None,
        )
    if name == "ollama":
        return OllamaProvider(config, base_url=app_settings.ollama_host)
    raise LLMProviderUnavailableError(f"Unknown provider: {name}")


class ModelInvoker:
    """
    Model invocation capability used by the review pipeline.

    Calling an instance sends one prompt to the configured provider and
    returns the response text. Provider errors and timeouts are logged,
    counted and turned into ``None``; there are no retries.
    """

    def __init__(self, provider: LLMProvider) -> None:
        self.provider = provider

    @classmethod
    def from_settings(cls, app_settings: Settings | None = None) -> "ModelInvoker":
        return cls(create_provider(app_settings=app_settings))

    async def __call__(self, prompt: str) -> str | None:
        provider = self.provider
        start_time = time.perf_counter()

        try:
            completion = await asyncio.wait_for(
                provider.complete(prompt),
                timeout=provider.config.timeout_seconds,
            )
        except (TimeoutError, LLMTimeoutError) as e:
            logger.warning(
                "Model call timed out",
                provider=provider.name,
                model=provider.model,
                error=str(e),
            )
            record_llm_request(
                provider=provider.name,
                model=provider.model,
                status="timeout",
                duration_seconds=time.perf_counter() - start_time,
            )
            return None
        except LLMError as e:
            logger.warning(
                "Model call failed",
                provider=provider.name,
                model=provider.model,
                error=str(e),
            )
            record_llm_request(
                provider=provider.name,
                model=provider.model,
                status="error",
                duration_seconds=time.perf_counter() - start_time,
            )
            return None

        record_llm_request(
            provider=provider.name,
            model=provider.model,
            status="success",
            duration_seconds=time.perf_counter() - start_time,
            tokens_input=completion.input_tokens,
            tokens_output=completion.output_tokens,
            cost_usd=provider.estimate_cost(completion.input_tokens, completion.output_tokens),
        )
        return completion.text

    async def close(self) -> None:
        await self.provider.close()
