# llm provider abstraction package
from agents.llm.base import (
    LLMConfig,
    LLMMessage,
    LLMResponse,
    BaseLLMProvider,
    LLMProviderError,
    LLMNotAvailableError,
)
from agents.llm.registry import LLMRouter, PROVIDER_ANTHROPIC

__all__ = [
    # Data classes
    "LLMConfig",
    "LLMMessage",
    "LLMResponse",
    # Abstract base
    "BaseLLMProvider",
    # Exceptions
    "LLMProviderError",
    "LLMNotAvailableError",
    # Router
    "LLMRouter",
    "PROVIDER_ANTHROPIC",
]
