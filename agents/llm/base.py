"""
LLM Provider Base
=================
Abstract interface the migration agent talks to.  No agent calls an SDK
directly:

    response = provider.complete(
        system=<system prompt str>,
        messages=[LLMMessage("user", "...")],
    )

Providers translate to their SDK internally and report token usage so the
workflow state can accumulate it.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class LLMMessage:
    """A single chat message."""
    role: str       # "user" | "assistant"
    content: str


@dataclass
class LLMResponse:
    """Normalised response from any provider."""
    text: str
    model: str
    provider: str
    input_tokens: int  = 0
    output_tokens: int = 0
    raw: Any           = field(default=None, repr=False)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMConfig:
    """
    Provider configuration.  Retry and timeout values are handed to the SDK
    client as-is; the provider does not loop on its own.
    """
    # ---- Identity ----
    provider: str        = "anthropic"
    model: str           = "claude-3-5-haiku-latest"

    # ---- Generation parameters ----
    max_tokens: int      = 4096
    temperature: float   = 0.0

    # ---- Remote API settings ----
    api_key: str         = ""                   # loaded from env if blank
    base_url: str        = ""                   # proxy / enterprise endpoint

    # ---- Retry / timeout (from PKFConfig.api) ----
    max_retries: int     = 3
    retry_delay_ms: int  = 1000
    timeout_seconds: float | None = 1800.0    # None = no timeout


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BaseLLMProvider(abc.ABC):
    """
    Every LLM provider inherits from this class and implements `complete()`.
    """

    def __init__(self, config: LLMConfig) -> None:
        self.config = config
        self._client: Any = None
        self._setup()

    # ------------------------------------------------------------------
    # Abstract methods
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def _setup(self) -> None:
        """
        Initialise the SDK client and set self._client.  Leaves it None
        (with a warning) when credentials are missing.
        """

    @abc.abstractmethod
    def complete(
        self,
        system: str,
        messages: list[LLMMessage],
    ) -> LLMResponse:
        """
        Send a chat completion request and return a normalised LLMResponse.

        Raises:
            LLMProviderError: on API / SDK / timeout errors.
            LLMNotAvailableError: if the provider is not configured.
        """

    # ------------------------------------------------------------------
    # Common helpers
    # ------------------------------------------------------------------

    @property
    def is_available(self) -> bool:
        return self._client is not None

    @property
    def provider_name(self) -> str:
        return self.config.provider

    @property
    def model_name(self) -> str:
        return self.config.model

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"provider={self.config.provider!r}, "
            f"model={self.config.model!r}, "
            f"available={self.is_available})"
        )


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class LLMProviderError(Exception):
    """Generic error from the LLM provider (API error, timeout, etc.)."""


class LLMNotAvailableError(LLMProviderError):
    """Raised when the provider has no credentials configured."""
