from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from hunkrev.core.config import Settings

# The capability the review pipeline depends on: prompt in, response text
# (or None when there is no usable response) out.
ModelInvoke = Callable[[str], Awaitable[str | None]]


@dataclass(frozen=True)
class GenerationConfig:
    """Fixed model identifier and sampling parameters for every review call."""

    model: str
    temperature: float = 0.2
    max_tokens: int = 700
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    json_mode: bool | None = None  # None: use JSON mode if the model supports it
    timeout_seconds: float = 120.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationConfig":
        return cls(
            model=settings.resolved_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            top_p=settings.llm_top_p,
            frequency_penalty=settings.llm_frequency_penalty,
            presence_penalty=settings.llm_presence_penalty,
            json_mode=settings.llm_json_mode,
            timeout_seconds=settings.llm_timeout_seconds,
        )


@dataclass
class LLMCompletion:
    """Raw completion returned by a provider."""

    text: str | None
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, config: GenerationConfig) -> None:
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        pass

    @property
    def model(self) -> str:
        """Model identifier."""
        return self.config.model

    @abstractmethod
    async def complete(self, prompt: str) -> LLMCompletion:
        """Send one prompt and return the completion. Raises LLMError on failure."""
        pass

    @abstractmethod
    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Estimate cost for a given number of tokens."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured and available."""
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None
