"""
FitCoach Router

Routes AI and nutrition requests of a fitness assistant through ordered chains of
providers (cheapest capable provider first), with fallback and a shared result cache.
"""

__version__ = "0.1.0"
__author__ = "FitCoach Router"

from .models import (
    TextPayload,
    FoodQuery,
    RoutingRequest,
    NutritionFacts,
    ProviderResult,
    ResponseEnvelope,
    RequestCategory,
    ErrorCode,
    SystemConfig,
)
from .core import ProviderRouter, FitnessAIService, build_router

__all__ = [
    "TextPayload",
    "FoodQuery",
    "RoutingRequest",
    "NutritionFacts",
    "ProviderResult",
    "ResponseEnvelope",
    "RequestCategory",
    "ErrorCode",
    "SystemConfig",
    "ProviderRouter",
    "FitnessAIService",
    "build_router",
]
