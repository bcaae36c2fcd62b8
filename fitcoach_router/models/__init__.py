"""
Data models for the FitCoach routing core.
"""

from .core import (
    TextPayload,
    FoodQuery,
    Payload,
    RoutingRequest,
    NutritionFacts,
    ProviderResult,
    ResponseEnvelope,
)

from .config import (
    SystemConfig,
    AIProviderConfig,
    NutritionProviderConfig,
    CacheConfig,
    RouterConfig,
    LoggingConfig,
)

from .enums import (
    Domain,
    RequestCategory,
    ResultStatus,
    FailureKind,
    ErrorCode,
)

__all__ = [
    # Core models
    "TextPayload",
    "FoodQuery",
    "Payload",
    "RoutingRequest",
    "NutritionFacts",
    "ProviderResult",
    "ResponseEnvelope",
    # Configuration models
    "SystemConfig",
    "AIProviderConfig",
    "NutritionProviderConfig",
    "CacheConfig",
    "RouterConfig",
    "LoggingConfig",
    # Enums
    "Domain",
    "RequestCategory",
    "ResultStatus",
    "FailureKind",
    "ErrorCode",
]
