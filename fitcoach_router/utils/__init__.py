"""
Utility modules for the FitCoach routing core.
"""

from .logging import setup_logging, get_logger, RoutingLogger
from .config_manager import ConfigManager
from .error_handling import (
    FitcoachRoutingError,
    ConfigurationError,
    InvalidRequestError,
    ProviderUnavailableError,
    ProviderInvocationError,
    ChainExhaustedError,
    NutritionNotFoundError,
    CacheUnavailableError,
    handle_error,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "RoutingLogger",
    "ConfigManager",
    "FitcoachRoutingError",
    "ConfigurationError",
    "InvalidRequestError",
    "ProviderUnavailableError",
    "ProviderInvocationError",
    "ChainExhaustedError",
    "NutritionNotFoundError",
    "CacheUnavailableError",
    "handle_error",
]
