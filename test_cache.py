"""
Tests for cache stores and cache key policies.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest
import redis

from conftest import FakeClock
from fitcoach_router.core.cache import InMemoryCacheStore, NullCacheStore, RedisCacheStore
from fitcoach_router.core.cache_policy import (
    DEFAULT_TTLS, ai_cache_key, build_cache_policies, nutrition_cache_key
)
from fitcoach_router.models import FoodQuery, RequestCategory, TextPayload
from fitcoach_router.utils.error_handling import CacheUnavailableError


class TestInMemoryCacheStore:
    """InMemoryCacheStore TTL, eviction and prefix deletion."""

    def setup_method(self):
        self.clock = FakeClock()
        self.store = InMemoryCacheStore(max_entries=3, clock=self.clock)

    def test_get_missing_key(self):
        assert self.store.get("nope") is None

    def test_entry_expires_after_ttl(self):
        self.store.set("k", "v", timedelta(seconds=60))
        self.clock.advance(59)
        assert self.store.get("k") == "v"
        self.clock.advance(1)
        assert self.store.get("k") is None

    def test_set_replaces_value_and_ttl(self):
        self.store.set("k", "old", timedelta(seconds=10))
        self.clock.advance(5)
        self.store.set("k", "new", timedelta(seconds=10))
        self.clock.advance(8)
        assert self.store.get("k") == "new"

    def test_oldest_entry_evicted_when_full(self):
        for i in range(3):
            self.store.set(f"k{i}", str(i), timedelta(hours=1))
            self.clock.advance(1)

        self.store.set("k3", "3", timedelta(hours=1))

        assert len(self.store) == 3
        assert self.store.get("k0") is None
        assert self.store.get("k3") == "3"

    def test_expired_entries_evicted_first(self):
        self.store.set("short", "s", timedelta(seconds=1))
        self.store.set("a", "a", timedelta(hours=1))
        self.store.set("b", "b", timedelta(hours=1))
        self.clock.advance(2)

        self.store.set("c", "c", timedelta(hours=1))

        assert self.store.get("a") == "a"
        assert self.store.get("c") == "c"

    def test_delete_by_prefix(self):
        self.store.set("ai:cache:chat_response:1", "x", timedelta(hours=1))
        self.store.set("ai:cache:food_analysis:2", "y", timedelta(hours=1))
        self.store.set("nutrition:global:apple:100", "z", timedelta(hours=1))

        assert self.store.delete_by_prefix("ai:cache:") == 2
        assert self.store.get("nutrition:global:apple:100") == "z"


def test_null_cache_store():
    store = NullCacheStore()
    store.set("k", "v", timedelta(hours=1))
    assert store.get("k") is None
    assert store.delete_by_prefix("") == 0


class TestRedisCacheStore:
    """RedisCacheStore against a mocked redis client."""

    def setup_method(self):
        self.client = Mock()
        self.store = RedisCacheStore(client=self.client)

    def test_set_uses_whole_second_expiry(self):
        self.store.set("k", "v", timedelta(minutes=30))
        self.client.set.assert_called_once_with("k", "v", ex=1800)

    def test_sub_second_ttl_rounds_up_to_one(self):
        self.store.set("k", "v", timedelta(milliseconds=200))
        self.client.set.assert_called_once_with("k", "v", ex=1)

    def test_get_passthrough(self):
        self.client.get.return_value = "cached"
        assert self.store.get("k") == "cached"

    def test_errors_wrapped(self):
        self.client.get.side_effect = redis.ConnectionError("refused")
        with pytest.raises(CacheUnavailableError) as exc_info:
            self.store.get("k")
        assert exc_info.value.operation == "get"

    def test_delete_by_prefix_scans(self):
        self.client.scan_iter.return_value = iter(["ai:cache:a", "ai:cache:b"])
        self.client.delete.return_value = 2

        assert self.store.delete_by_prefix("ai:cache:") == 2
        self.client.scan_iter.assert_called_once_with(match="ai:cache:*", count=500)
        self.client.delete.assert_called_once_with("ai:cache:a", "ai:cache:b")

    def test_ping_failure(self):
        self.client.ping.side_effect = redis.TimeoutError()
        assert self.store.ping() is False


class TestCachePolicies:
    """Cache key derivation and TTL table."""

    def test_default_ttls(self):
        policies = build_cache_policies()
        assert policies[RequestCategory.FOOD_ANALYSIS].ttl == timedelta(minutes=30)
        assert policies[RequestCategory.NUTRITION_ADVICE].ttl == timedelta(hours=2)
        assert policies[RequestCategory.PROGRESS_ANALYSIS].ttl == timedelta(minutes=15)
        assert policies[RequestCategory.WORKOUT_PLANNING].ttl == timedelta(hours=6)
        assert policies[RequestCategory.CHAT_RESPONSE].ttl == timedelta(minutes=5)
        assert policies[RequestCategory.COMPLEX_QUERY].ttl == timedelta(minutes=60)
        assert policies[RequestCategory.NUTRITION_LOOKUP].ttl == timedelta(hours=24)
        assert set(DEFAULT_TTLS) == set(RequestCategory)

    def test_override(self):
        policies = build_cache_policies({"WORKOUT_PLANNING": 60})
        assert policies[RequestCategory.WORKOUT_PLANNING].ttl == timedelta(seconds=60)
        assert policies[RequestCategory.CHAT_RESPONSE].ttl == timedelta(minutes=5)

    def test_nutrition_key_normalized(self):
        key = nutrition_cache_key(RequestCategory.NUTRITION_LOOKUP, FoodQuery("  Chicken   Breast ", 150))
        assert key == "nutrition:global:chicken breast:150.0"

    def test_nutrition_key_fractional_weight(self):
        key = nutrition_cache_key(RequestCategory.NUTRITION_LOOKUP, FoodQuery("rice", 75.5))
        assert key == "nutrition:global:rice:75.5"

    @pytest.mark.parametrize("weight,other", [(150, 150.0000001), (1000000, 1000004)])
    def test_nutrition_key_distinguishes_close_weights(self, weight, other):
        category = RequestCategory.NUTRITION_LOOKUP
        assert nutrition_cache_key(category, FoodQuery("rice", weight)) != \
            nutrition_cache_key(category, FoodQuery("rice", other))

    def test_nutrition_key_int_and_float_weight_share_slot(self):
        category = RequestCategory.NUTRITION_LOOKUP
        assert nutrition_cache_key(category, FoodQuery("rice", 150)) == \
            nutrition_cache_key(category, FoodQuery("rice", 150.0))

    def test_ai_key_whitespace_insensitive_case_sensitive(self):
        category = RequestCategory.CHAT_RESPONSE
        base = ai_cache_key(category, TextPayload("Plan my week"))

        assert base.startswith("ai:cache:chat_response:")
        assert ai_cache_key(category, TextPayload("  Plan \n my\tweek ")) == base
        assert ai_cache_key(category, TextPayload("plan my week")) != base
        assert ai_cache_key(RequestCategory.COMPLEX_QUERY, TextPayload("Plan my week")) != base

    def test_key_builder_rejects_wrong_payload(self):
        with pytest.raises(TypeError):
            ai_cache_key(RequestCategory.CHAT_RESPONSE, FoodQuery("apple"))
