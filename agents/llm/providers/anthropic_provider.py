"""
Anthropic Claude Provider
=========================
Claude models via the official Anthropic Python SDK.

Required env vars:
    ANTHROPIC_API_KEY    -- your Anthropic API key

Retries and the request timeout are delegated to the SDK client
(``max_retries`` / ``timeout``), configured from PKFConfig.api.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import anthropic

from agents.llm.base import (
    BaseLLMProvider,
    LLMMessage,
    LLMNotAvailableError,
    LLMProviderError,
    LLMResponse,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude via the `anthropic` Python SDK."""

    def _setup(self) -> None:
        api_key = self.config.api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if not api_key:
            logger.warning(
                "AnthropicProvider: ANTHROPIC_API_KEY not set. "
                "Provider will be unavailable."
            )
            self._client = None
            return

        kwargs: dict[str, Any] = {
            "api_key":     api_key,
            "max_retries": self.config.max_retries,
            "timeout":     self.config.timeout_seconds,
        }
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url
        self._client = anthropic.Anthropic(**kwargs)
        logger.info(
            "AnthropicProvider ready: model=%s retries=%d timeout=%ss",
            self.config.model, self.config.max_retries, self.config.timeout_seconds,
        )

    def complete(
        self,
        system: str,
        messages: list[LLMMessage],
    ) -> LLMResponse:
        if not self._client:
            raise LLMNotAvailableError(
                "AnthropicProvider is not configured. Set ANTHROPIC_API_KEY."
            )

        sdk_messages = [{"role": m.role, "content": m.content} for m in messages]
        try:
            response = self._client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=system,
                messages=sdk_messages,
            )
        except anthropic.AuthenticationError as exc:
            raise LLMProviderError(
                f"Anthropic authentication failed, check ANTHROPIC_API_KEY: {exc}"
            ) from exc
        except anthropic.RateLimitError as exc:
            raise LLMProviderError(f"Anthropic rate limit exceeded: {exc}") from exc
        except anthropic.APIStatusError as exc:
            raise LLMProviderError(
                f"Anthropic API error [{exc.status_code}]: {exc.message}"
            ) from exc
        except anthropic.APIConnectionError as exc:
            raise LLMProviderError(f"Anthropic connection error: {exc}") from exc
        except anthropic.APIError as exc:
            raise LLMProviderError(f"Anthropic API error: {exc}") from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        return LLMResponse(
            text=text,
            model=response.model,
            provider="anthropic",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            raw=response,
        )
