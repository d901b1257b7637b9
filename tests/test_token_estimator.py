"""
Unit tests for TokenEstimator and TokenCache.
"""

import pytest

from agents.llm.base import LLMMessage
from migration.token_estimator import MESSAGE_OVERHEAD, TokenCache, TokenEstimator


class TestEstimate:

    @pytest.fixture
    def estimator(self):
        return TokenEstimator()

    def test_empty_text_is_zero(self, estimator):
        assert estimator.estimate("") == 0

    def test_chars_per_token_with_buffer(self, estimator):
        # 400 chars -> 100 tokens -> +20% -> 120
        assert estimator.estimate("a" * 400) == 120
        # 4 chars -> 1 token -> ceil(1.2) = 2
        assert estimator.estimate("abcd") == 2
        # 5 chars -> ceil(1.25) = 2 -> ceil(2.4) = 3
        assert estimator.estimate("abcde") == 3

    def test_deterministic_across_instances(self, estimator):
        text = "# Title\n\nSome documentation body.\n" * 10
        assert estimator.estimate(text) == estimator.estimate(text)
        assert estimator.estimate(text) == TokenEstimator().estimate(text)

    def test_rejects_non_text(self, estimator):
        with pytest.raises(TypeError):
            estimator.estimate(None)
        with pytest.raises(TypeError):
            estimator.estimate(42)

    def test_result_is_cached(self, estimator):
        estimator.estimate("hello world")
        assert "hello world" in estimator.cache
        assert estimator.get_cache_stats()["size"] == 1

    def test_empty_text_not_cached(self, estimator):
        estimator.estimate("")
        assert estimator.get_cache_stats()["size"] == 0


class TestConversation:

    def test_sums_messages_plus_overhead(self):
        estimator = TokenEstimator()
        messages  = [{"role": "user", "content": "abcd"}, {"role": "assistant", "content": ""}]
        assert estimator.estimate_conversation(messages) == 2 + 0 + 2 * MESSAGE_OVERHEAD

    def test_accepts_message_objects(self):
        estimator = TokenEstimator()
        messages  = [LLMMessage(role="user", content="a" * 400)]
        assert estimator.estimate_conversation(messages) == 120 + MESSAGE_OVERHEAD

    def test_empty_conversation(self):
        assert TokenEstimator().estimate_conversation([]) == 0

    def test_agent_execution_adds_output_budget(self):
        estimator = TokenEstimator()
        messages  = [{"content": "abcd"}]
        expected  = estimator.estimate("abcd") + estimator.estimate_conversation(messages) + 100
        assert estimator.estimate_agent_execution("abcd", messages, max_output_tokens=100) == expected

    def test_agent_execution_default_budget(self):
        assert TokenEstimator().estimate_agent_execution("", []) == 4096


class TestCacheBound:

    def test_size_never_exceeds_max(self):
        estimator = TokenEstimator(cache=TokenCache(max_size=3))
        for i in range(20):
            estimator.estimate(f"document number {i}")
            assert estimator.get_cache_stats()["size"] <= 3
        assert estimator.get_cache_stats() == {"size": 3, "max_size": 3}

    def test_least_recently_used_is_evicted(self):
        cache = TokenCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.get("a") == 1   # "b" is now least recently used
        cache.set("c", 3)
        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_clear_cache_keeps_returned_values(self):
        estimator = TokenEstimator()
        first = estimator.estimate("some text to estimate")
        estimator.clear_cache()
        assert estimator.get_cache_stats()["size"] == 0
        assert estimator.estimate("some text to estimate") == first

    def test_estimators_do_not_share_cache(self):
        one, two = TokenEstimator(), TokenEstimator()
        one.estimate("only in one")
        assert two.get_cache_stats()["size"] == 0

    def test_invalid_max_size(self):
        with pytest.raises(ValueError):
            TokenCache(max_size=0)
