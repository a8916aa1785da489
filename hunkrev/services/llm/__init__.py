from hunkrev.services.llm.base import GenerationConfig, LLMCompletion, LLMProvider, ModelInvoke
from hunkrev.services.llm.invoker import ModelInvoker, create_provider

__all__ = [
    "GenerationConfig",
    "LLMCompletion",
    "LLMProvider",
    "ModelInvoke",
    "ModelInvoker",
    "create_provider",
]
