"""
Token Estimator
===============
Heuristic text -> token conversion used for all plan cost math.

    1 token ~= 4 characters of English text, plus a 20% buffer for
    markdown / formatting overhead.

Estimates are cached per exact input string in a bounded LRU cache owned by
the estimator instance.  Nothing here performs I/O.
"""

import logging
import math
from collections import OrderedDict
from typing import Any, Iterable

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN        = 4
FORMATTING_BUFFER      = 1.2
MESSAGE_OVERHEAD       = 4        # role / separator tokens per message boundary
DEFAULT_CACHE_SIZE     = 1000
DEFAULT_OUTPUT_TOKENS  = 4096


class TokenCache:
    """
    Bounded least-recently-used cache: text -> token count.

    Once ``max_size`` entries are stored, inserting a new key evicts the entry
    that was used least recently.  ``len(cache)`` never exceeds ``max_size``.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self._entries: OrderedDict[str, int] = OrderedDict()

    def get(self, text: str) -> int | None:
        tokens = self._entries.get(text)
        if tokens is not None:
            self._entries.move_to_end(text)
        return tokens

    def set(self, text: str, tokens: int) -> None:
        if text in self._entries:
            self._entries.move_to_end(text)
        elif len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[text] = tokens

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text: object) -> bool:
        return text in self._entries


class TokenEstimator:
    """
    Estimates token counts for prompts, conversations and whole agent runs.

    Parameters
    ----------
    cache : TokenCache | None
        Cache to use.  A private cache of ``DEFAULT_CACHE_SIZE`` entries is
        created when omitted, so two estimators never share state unless the
        caller passes the same cache to both.
    """

    def __init__(self, cache: TokenCache | None = None) -> None:
        self.cache = cache if cache is not None else TokenCache()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def estimate(self, text: str) -> int:
        """Return the estimated token count for *text* (0 for empty text)."""
        if not isinstance(text, str):
            raise TypeError(f"estimate() expects str, got {type(text).__name__}")
        if not text:
            return 0

        cached = self.cache.get(text)
        if cached is not None:
            return cached

        base_tokens = math.ceil(len(text) / CHARS_PER_TOKEN)
        tokens      = math.ceil(base_tokens * FORMATTING_BUFFER)
        self.cache.set(text, tokens)
        return tokens

    def estimate_conversation(self, messages: Iterable[Any]) -> int:
        """
        Sum the estimates of every message plus a fixed per-message overhead.

        Messages may be ``LLMMessage`` objects or mappings with a
        ``"content"`` key.
        """
        total = 0
        for message in messages or ():
            total += self.estimate(_message_content(message)) + MESSAGE_OVERHEAD
        return total

    def estimate_agent_execution(
        self,
        system_prompt: str,
        messages: Iterable[Any],
        max_output_tokens: int = DEFAULT_OUTPUT_TOKENS,
    ) -> int:
        """Estimate a full agent call: system prompt + history + output budget."""
        return (
            self.estimate(system_prompt)
            + self.estimate_conversation(messages)
            + max_output_tokens
        )

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.debug("Token estimate cache cleared.")

    def get_cache_stats(self) -> dict[str, int]:
        return {"size": len(self.cache), "max_size": self.cache.max_size}


def _message_content(message: Any) -> str:
    if isinstance(message, dict):
        return message.get("content", "")
    return getattr(message, "content", "")
