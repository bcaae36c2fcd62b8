"""
Core components of the FitCoach routing core.
"""

from .router import ProviderRouter
from .chain import ProviderChain
from .interfaces import (
    ProviderAdapter,
    AIProviderAdapter,
    OpenAICompatibleAdapter,
    DeepSeekAdapter,
    OpenAIAdapter,
    GeminiFlashAdapter,
)
from .nutrition import NutritionProviderAdapter, FatSecretAdapter, USDAAdapter, LocalProductsAdapter
from .cache import CacheStore, NullCacheStore, InMemoryCacheStore, RedisCacheStore
from .cache_policy import CachePolicy, build_cache_policies
from .registry import build_router, build_cache_store
from .service import FitnessAIService

__all__ = [
    "ProviderRouter",
    "ProviderChain",
    "ProviderAdapter",
    "AIProviderAdapter",
    "OpenAICompatibleAdapter",
    "DeepSeekAdapter",
    "OpenAIAdapter",
    "GeminiFlashAdapter",
    "NutritionProviderAdapter",
    "FatSecretAdapter",
    "USDAAdapter",
    "LocalProductsAdapter",
    "CacheStore",
    "NullCacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "CachePolicy",
    "build_cache_policies",
    "build_router",
    "build_cache_store",
    "FitnessAIService",
]
