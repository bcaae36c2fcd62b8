"""
Configuration models for the FitCoach routing core.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import logging


@dataclass
class AIProviderConfig:
    """Configuration shared by LLM provider adapters."""
    api_key: str = ""
    base_url: str = ""
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout_seconds: float = 30.0
    cost_per_1k_tokens: float = 0.0
    readiness_ttl_seconds: float = 60.0


def _deepseek_defaults() -> AIProviderConfig:
    return AIProviderConfig(
        base_url="https://api.deepseek.com",
        model="deepseek-reasoner",
        cost_per_1k_tokens=0.00014,
    )


def _gemini_defaults() -> AIProviderConfig:
    return AIProviderConfig(
        base_url="https://generativelanguage.googleapis.com/v1beta",
        model="gemini-2.5-flash",
        cost_per_1k_tokens=0.000075,
    )


def _openai_defaults() -> AIProviderConfig:
    return AIProviderConfig(
        base_url="https://api.openai.com/v1",
        model="gpt-4o",
        cost_per_1k_tokens=0.005,
    )


@dataclass
class NutritionProviderConfig:
    """Configuration shared by nutrition data adapters."""
    api_key: str = ""
    base_url: str = ""
    timeout_seconds: float = 10.0
    readiness_ttl_seconds: float = 60.0
    max_results: int = 5


def _fatsecret_defaults() -> NutritionProviderConfig:
    return NutritionProviderConfig(base_url="https://platform.fatsecret.com/rest/server.api")


def _usda_defaults() -> NutritionProviderConfig:
    return NutritionProviderConfig(base_url="https://api.nal.usda.gov/fdc/v1")


@dataclass
class CacheConfig:
    """Configuration for the shared result cache."""
    backend: str = "memory"  # "memory", "redis" or "none"
    redis_url: str = "redis://localhost:6379/0"
    socket_timeout_seconds: float = 2.0
    max_entries: int = 10000
    # Per-category TTL overrides in seconds, keyed by category value (e.g. "chat_response").
    ttl_overrides: Dict[str, int] = field(default_factory=dict)


@dataclass
class RouterConfig:
    """Configuration for the router itself."""
    max_workers: int = 8
    user_error_message: str = "Service temporarily unavailable. Please try again later."


@dataclass
class LoggingConfig:
    """Configuration for system logging."""
    level: int = logging.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = "fitcoach_router.log"
    max_file_size_mb: int = 100
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True


@dataclass
class SystemConfig:
    """Main system configuration."""
    deepseek: AIProviderConfig = field(default_factory=_deepseek_defaults)
    gemini: AIProviderConfig = field(default_factory=_gemini_defaults)
    openai: AIProviderConfig = field(default_factory=_openai_defaults)
    fatsecret: NutritionProviderConfig = field(default_factory=_fatsecret_defaults)
    usda: NutritionProviderConfig = field(default_factory=_usda_defaults)
    cache: CacheConfig = field(default_factory=CacheConfig)
    router: RouterConfig = field(default_factory=RouterConfig)
    logging_config: LoggingConfig = field(default_factory=LoggingConfig)
    debug_mode: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
