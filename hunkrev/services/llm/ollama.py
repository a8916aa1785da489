from typing import Any

import httpx
import structlog

from hunkrev.core.exceptions import LLMError, LLMTimeoutError
from hunkrev.services.llm.base import GenerationConfig, LLMCompletion, LLMProvider

logger = structlog.get_logger()


class OllamaProvider(LLMProvider):
    """Ollama provider for local LLM inference."""

    def __init__(self, config: GenerationConfig, base_url: str = "http://localhost:11434") -> None:
        super().__init__(config)
        self._base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "ollama"

    def is_available(self) -> bool:
        """Check if Ollama server is running."""
        try:
            with httpx.Client(timeout=5.0) as client:
                response = client.get(f"{self._base_url}/api/tags")
                is_ok: bool = response.status_code == 200
                return is_ok
        except httpx.HTTPError:
            return False

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Local inference is free!"""
        return 0.0

    def build_payload(self, prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
                "top_p": self.config.top_p,
                "frequency_penalty": self.config.frequency_penalty,
                "presence_penalty": self.config.presence_penalty,
            },
        }
        # Ollama constrains output to JSON for any model.
        if self.config.json_mode is not False:
            payload["format"] = "json"
        return payload

    async def complete(self, prompt: str) -> LLMCompletion:
        """Review a hunk using the local Ollama model."""
        logger.debug("Sending review request to Ollama", model=self.model)

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                response = await client.post(
                    f"{self._base_url}/api/generate",
                    json=self.build_payload(prompt),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(f"Ollama request timed out: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Ollama API error", error=str(e))
            raise LLMError(f"Ollama API error: {e}") from e

        return LLMCompletion(
            text=data.get("response"),
            input_tokens=int(data.get("prompt_eval_count") or 0),
            output_tokens=int(data.get("eval_count") or 0),
        )
