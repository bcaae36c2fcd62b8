"""
Default wiring: which providers serve which category, in which order.
"""

from typing import Dict, Optional

from ..models import RequestCategory, SystemConfig
from ..models.config import CacheConfig
from ..utils import get_logger
from ..utils.error_handling import ConfigurationError
from .cache import CacheStore, InMemoryCacheStore, NullCacheStore, RedisCacheStore
from .cache_policy import build_cache_policies
from .chain import ProviderChain
from .interfaces import DeepSeekAdapter, GeminiFlashAdapter, OpenAIAdapter, ProviderAdapter
from .nutrition import FatSecretAdapter, LocalProductsAdapter, USDAAdapter
from .router import ProviderRouter

logger = get_logger(__name__)

# Cheapest capable provider first. DeepSeek R1 is the cheapest reasoning model, so it
# leads the categories that need analysis; Gemini Flash is cheapest for plain text.
DEFAULT_ROUTING: Dict[RequestCategory, tuple] = {
    RequestCategory.FOOD_ANALYSIS: ("deepseek", "gemini", "openai"),
    RequestCategory.PROGRESS_ANALYSIS: ("deepseek", "gemini", "openai"),
    RequestCategory.NUTRITION_ADVICE: ("gemini", "openai"),
    RequestCategory.WORKOUT_PLANNING: ("gemini", "openai"),
    RequestCategory.CHAT_RESPONSE: ("gemini", "openai"),
    RequestCategory.COMPLEX_QUERY: ("openai",),
    RequestCategory.NUTRITION_LOOKUP: ("fatsecret", "usda", "local"),
}


def build_adapters(config: SystemConfig) -> Dict[str, ProviderAdapter]:
    """One adapter instance per backend, shared by every chain that uses it."""
    return {
        "deepseek": DeepSeekAdapter(config.deepseek),
        "gemini": GeminiFlashAdapter(config.gemini),
        "openai": OpenAIAdapter(config.openai),
        "fatsecret": FatSecretAdapter(config.fatsecret),
        "usda": USDAAdapter(config.usda),
        "local": LocalProductsAdapter(),
    }


def build_chains(adapters: Dict[str, ProviderAdapter],
                 routing: Optional[Dict[RequestCategory, tuple]] = None) -> Dict[RequestCategory, ProviderChain]:
    routing = routing or DEFAULT_ROUTING
    chains = {}
    for category, names in routing.items():
        missing = [name for name in names if name not in adapters]
        if missing:
            raise ConfigurationError(
                f"Unknown providers {missing} in chain for {category.slug}", config_key=category.value)
        chains[category] = ProviderChain(category, [adapters[name] for name in names])
    return chains


def build_cache_store(config: CacheConfig) -> CacheStore:
    backend = config.backend.lower()
    if backend == "redis":
        logger.info(f"Using Redis cache at {config.redis_url}")
        return RedisCacheStore(config.redis_url, socket_timeout=config.socket_timeout_seconds)
    if backend == "memory":
        return InMemoryCacheStore(max_entries=config.max_entries)
    if backend == "none":
        logger.warning("Result cache disabled")
        return NullCacheStore()
    raise ConfigurationError(f"Unknown cache backend: {config.backend}", config_key="cache.backend")


def build_router(config: Optional[SystemConfig] = None,
                 cache_store: Optional[CacheStore] = None) -> ProviderRouter:
    """
    Wire the default provider chains, cache store and cache policies.

    Args:
        config: System configuration; defaults are used when omitted
        cache_store: Cache store to use instead of the one described by ``config.cache``

    Returns:
        ProviderRouter ready to serve every request category
    """
    config = config or SystemConfig()
    chains = build_chains(build_adapters(config))
    return ProviderRouter(
        chains=chains,
        cache_store=cache_store if cache_store is not None else build_cache_store(config.cache),
        cache_policies=build_cache_policies(config.cache.ttl_overrides),
        config=config.router,
    )
