"""
LLM Provider Registry & Router
==============================
Builds the provider from an LLMConfig (env and CLI settings layered on top) and
exposes a single `LLMRouter` the migration agent uses.

Supported providers:
    "anthropic"   -- Claude (Anthropic API)

Usage:
    from agents.llm.registry import LLMRouter

    router = LLMRouter.from_cli_args(args, api_config=config.api)
    response = router.complete(system=..., messages=[...])
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from agents.llm.base import LLMConfig, LLMMessage, LLMNotAvailableError, LLMResponse

if TYPE_CHECKING:
    from agents.llm.base import BaseLLMProvider
    from migration.config import ApiConfig

logger = logging.getLogger(__name__)

PROVIDER_ANTHROPIC = "anthropic"


def _load_provider(config: LLMConfig) -> "BaseLLMProvider":
    p = config.provider.lower().replace("-", "_")

    if p == PROVIDER_ANTHROPIC:
        from agents.llm.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(config)

    raise ValueError(
        f"Unknown provider '{config.provider}'. Valid options: {PROVIDER_ANTHROPIC}"
    )


# ---------------------------------------------------------------------------
# LLMRouter
# ---------------------------------------------------------------------------

class LLMRouter:
    """
    Wraps the configured provider and exposes the same interface as
    BaseLLMProvider, plus the availability check.
    """

    def __init__(self, provider: "BaseLLMProvider") -> None:
        self._provider = provider

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMRouter":
        provider = _load_provider(config)
        logger.info("LLMRouter created: provider=%s", provider)
        return cls(provider)

    @classmethod
    def from_cli_args(
        cls,
        args: object,
        api_config: "ApiConfig | None" = None,
    ) -> "LLMRouter":
        """Build a router from a parsed argparse.Namespace (main.py)."""
        config = cls._config_from_env(api_config)

        if getattr(args, "llm_model", None):
            config.model = args.llm_model
        if getattr(args, "llm_max_tokens", None):
            config.max_tokens = args.llm_max_tokens

        logger.info(
            "LLM configured: provider=%s model=%s max_tokens=%d",
            config.provider, config.model, config.max_tokens,
        )
        return cls.from_config(config)

    # ------------------------------------------------------------------
    # Public API (mirrors BaseLLMProvider)
    # ------------------------------------------------------------------

    @property
    def is_available(self) -> bool:
        return self._provider.is_available

    @property
    def provider_name(self) -> str:
        return self._provider.provider_name

    @property
    def model_name(self) -> str:
        return self._provider.model_name

    def complete(
        self,
        system: str,
        messages: list[LLMMessage],
    ) -> LLMResponse:
        """
        Raises:
            LLMNotAvailableError: if no provider is configured.
            LLMProviderError:     if the provider call fails.
        """
        if not self._provider.is_available:
            raise LLMNotAvailableError(f"No LLM provider is available: {self._provider}")
        return self._provider.complete(system, messages)

    # ------------------------------------------------------------------
    # Env-based config builder
    # ------------------------------------------------------------------

    @staticmethod
    def _config_from_env(api_config: "ApiConfig | None" = None) -> LLMConfig:
        config = LLMConfig()

        if os.environ.get("LLM_PROVIDER"):
            config.provider = os.environ["LLM_PROVIDER"]
        config.api_key = os.environ.get("ANTHROPIC_API_KEY", "")

        if os.environ.get("LLM_MODEL"):
            config.model = os.environ["LLM_MODEL"]
        if os.environ.get("LLM_MAX_TOKENS"):
            config.max_tokens = int(os.environ["LLM_MAX_TOKENS"])
        if os.environ.get("LLM_TEMPERATURE"):
            config.temperature = float(os.environ["LLM_TEMPERATURE"])
        if os.environ.get("LLM_BASE_URL"):
            config.base_url = os.environ["LLM_BASE_URL"]

        if api_config is not None:
            config.max_retries     = api_config.max_retries
            config.retry_delay_ms  = api_config.retry_delay_ms
            config.timeout_seconds = api_config.timeout / 1000 if api_config.timeout else None

        return config
