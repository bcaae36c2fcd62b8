"""
Provider router: cache-aside lookup in front of per-category provider chains.
"""

import asyncio
import math
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Mapping, Optional

from ..models import (
    FoodQuery, Payload, ProviderResult, RequestCategory, ResponseEnvelope, RoutingRequest, TextPayload
)
from ..models.config import RouterConfig
from ..models.enums import Domain, ErrorCode
from ..utils import get_logger, RoutingLogger
from ..utils.error_handling import ConfigurationError, InvalidRequestError
from .cache import CacheStore, NullCacheStore
from .cache_policy import AI_CACHE_PREFIX, NUTRITION_CACHE_PREFIX, CachePolicy, build_cache_policies
from .chain import ProviderChain


class ProviderRouter:
    """
    Single entry point for AI and nutrition requests.

    For every request the router validates the payload, looks the result up in the
    cache, runs the category's provider chain on a miss and stores successful results.
    ``handle`` never raises; every outcome is a ResponseEnvelope. Cache failures
    degrade to a miss and never fail a request.
    """

    def __init__(self, chains: Mapping[RequestCategory, ProviderChain],
                 cache_store: Optional[CacheStore] = None,
                 cache_policies: Optional[Mapping[RequestCategory, CachePolicy]] = None,
                 config: Optional[RouterConfig] = None):
        self.logger = get_logger(__name__)
        self.routing_logger = RoutingLogger()
        self.config = config or RouterConfig()

        self.chains: Dict[RequestCategory, ProviderChain] = dict(chains)
        # An empty InMemoryCacheStore is falsy (it defines __len__).
        self.cache_store = cache_store if cache_store is not None else NullCacheStore()
        self.cache_policies: Dict[RequestCategory, CachePolicy] = dict(
            cache_policies if cache_policies is not None else build_cache_policies())

        # Fail at startup rather than on the first request of a category.
        for category in RequestCategory:
            if category not in self.chains:
                raise ConfigurationError(f"No provider chain for {category.slug}", config_key=category.value)
            if category not in self.cache_policies:
                raise ConfigurationError(f"No cache policy for {category.slug}", config_key=category.value)

        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="fitcoach-router")

        self.logger.info(
            f"ProviderRouter initialized with {len(self.chains)} chains, "
            f"cache={type(self.cache_store).__name__}"
        )

    def handle(self, category: RequestCategory, payload: Payload,
               originator_id: str = "anonymous") -> ResponseEnvelope:
        """
        Serve one request.

        Args:
            category: Request category selecting chain and cache policy
            payload: TextPayload for AI categories, FoodQuery for nutrition lookups
            originator_id: Caller identity, used for logging only

        Returns:
            ResponseEnvelope: Success or failure envelope with processing time set
        """
        start_time = time.time()
        try:
            envelope = self._handle(category, payload, originator_id)
        except InvalidRequestError as e:
            self.logger.info(f"Rejected {getattr(category, 'value', category)} request from {originator_id}: {e.message}")
            envelope = ResponseEnvelope.error(self._safe_category(category), e.message, e.error_code)
        except Exception as e:
            self.routing_logger.log_error(e, {
                "category": getattr(category, "value", str(category)),
                "originator_id": originator_id,
            })
            envelope = ResponseEnvelope.error(
                self._safe_category(category), self.config.user_error_message, ErrorCode.INTERNAL_ERROR)

        return envelope.with_processing_time((time.time() - start_time) * 1000)

    def _handle(self, category: RequestCategory, payload: Payload, originator_id: str) -> ResponseEnvelope:
        self._validate(category, payload)
        request = RoutingRequest(category=category, payload=payload, originator_id=originator_id)
        policy = self.cache_policies[category]
        cache_key = policy.cache_key(payload)

        cached = self._cache_get(cache_key)
        if cached is not None:
            self.logger.info(f"Cache hit for {category.slug} ({originator_id}), provider={cached.provider}")
            return ResponseEnvelope.from_result(category, cached, from_cache=True)

        result = self.chains[category].execute(request)
        if result.success:
            self._cache_set(cache_key, result, policy)
            envelope = ResponseEnvelope.from_result(category, result)
            self.logger.info(f"{category.slug} for {originator_id} served: {envelope.log_summary}")
            return envelope

        return self._failure_envelope(request, result)

    def _failure_envelope(self, request: RoutingRequest, result: ProviderResult) -> ResponseEnvelope:
        category = request.category
        if result.error_code is ErrorCode.NOT_FOUND:
            self.logger.info(f"No data for {category.slug} request from {request.originator_id}: {result.error_message}")
            if isinstance(request.payload, FoodQuery):
                message = f"No nutrition data found for '{request.payload.name}'"
            else:
                message = self.config.user_error_message
            return ResponseEnvelope.error(category, message, ErrorCode.NOT_FOUND)

        self.logger.error(
            f"{category.slug} request from {request.originator_id} failed: {result.error_message}",
            extra={"event_type": "chain_exhausted", "attempted_providers": list(result.attempted_providers)},
        )
        return ResponseEnvelope.error(
            category, self.config.user_error_message, result.error_code or ErrorCode.CHAIN_EXHAUSTED)

    @staticmethod
    def _validate(category: RequestCategory, payload: Payload) -> None:
        if not isinstance(category, RequestCategory):
            raise InvalidRequestError(f"Unknown request category: {category!r}")

        if category.domain is Domain.NUTRITION:
            if not isinstance(payload, FoodQuery):
                raise InvalidRequestError("Nutrition lookup requires a food name and weight")
            if not isinstance(payload.name, str) or not payload.name.strip():
                raise InvalidRequestError("Food name must not be empty")
            weight = payload.weight
            if isinstance(weight, bool) or not isinstance(weight, (int, float)) \
                    or not math.isfinite(weight) or weight <= 0:
                raise InvalidRequestError("Weight must be a positive number of grams")
        else:
            if not isinstance(payload, TextPayload):
                raise InvalidRequestError(f"{category.slug} requires a text payload")
            if not isinstance(payload.content, str) or not payload.content.strip():
                raise InvalidRequestError("Request text must not be empty")

    @staticmethod
    def _safe_category(category: Any) -> RequestCategory:
        # Error envelopes need a category even when the caller passed garbage.
        return category if isinstance(category, RequestCategory) else RequestCategory.CHAT_RESPONSE

    def _cache_get(self, key: str) -> Optional[ProviderResult]:
        try:
            raw = self.cache_store.get(key)
        except Exception as e:
            self.routing_logger.log_cache_event("get", key, e)
            return None

        if raw is None:
            self.routing_logger.log_cache_event("miss", key)
            return None

        try:
            result = ProviderResult.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            self.routing_logger.log_cache_event("decode", key, e)
            return None

        self.routing_logger.log_cache_event("hit", key)
        return result if result.success else None

    def _cache_set(self, key: str, result: ProviderResult, policy: CachePolicy) -> None:
        try:
            self.cache_store.set(key, result.to_json(), policy.ttl)
            self.routing_logger.log_cache_event("store", key)
        except Exception as e:
            self.routing_logger.log_cache_event("set", key, e)

    def submit(self, category: RequestCategory, payload: Payload,
               originator_id: str = "anonymous") -> "Future[ResponseEnvelope]":
        """Run ``handle`` on the router's thread pool."""
        return self._executor.submit(self.handle, category, payload, originator_id)

    async def handle_async(self, category: RequestCategory, payload: Payload,
                           originator_id: str = "anonymous") -> ResponseEnvelope:
        """
        Awaitable ``handle``. Cancelling the awaiting task stops waiting only; the
        provider call already running on the pool is not interrupted.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.handle, category, payload, originator_id)

    def clear_cache(self, category: Optional[RequestCategory] = None) -> bool:
        """
        Delete cached results of one category, or of every category when none is given.

        Returns:
            bool: False if the cache store reported an error
        """
        if category is not None:
            prefixes = [self.cache_policies[category].key_prefix]
        else:
            prefixes = [AI_CACHE_PREFIX, NUTRITION_CACHE_PREFIX]

        try:
            deleted = sum(self.cache_store.delete_by_prefix(prefix) for prefix in prefixes)
        except Exception as e:
            self.routing_logger.log_cache_event("clear", ",".join(prefixes), e)
            return False

        self.logger.info(f"Cleared {deleted} cache entries ({', '.join(prefixes)})")
        return True

    def get_provider_status(self) -> Dict[str, Any]:
        return {
            category.value: {
                "providers": [adapter.describe() for adapter in chain.adapters],
                "available": chain.available_providers(),
                "cache_ttl_seconds": int(self.cache_policies[category].ttl.total_seconds()),
            }
            for category, chain in self.chains.items()
        }

    def is_healthy(self) -> bool:
        """True when every chain has at least one available provider."""
        try:
            return all(chain.available_providers() for chain in self.chains.values())
        except Exception as e:
            self.logger.error(f"Health check failed: {str(e)}")
            return False

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        self.logger.info("ProviderRouter shut down")

    def __enter__(self) -> "ProviderRouter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
