"""
Configuration management for the FitCoach routing core.
"""

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Dict, Any, Mapping
import logging

from ..models.config import (
    SystemConfig, AIProviderConfig, NutritionProviderConfig, CacheConfig,
    RouterConfig, LoggingConfig,
)
from ..models.enums import RequestCategory
from .error_handling import ConfigurationError

# Environment variables that override values from the config file.
ENV_OVERRIDES = {
    "OPENAI_API_KEY": ("openai", "api_key"),
    "DEEPSEEK_API_KEY": ("deepseek", "api_key"),
    "GEMINI_API_KEY": ("gemini", "api_key"),
    "FATSECRET_ACCESS_TOKEN": ("fatsecret", "api_key"),
    "USDA_API_KEY": ("usda", "api_key"),
    "REDIS_URL": ("cache", "redis_url"),
    "FITCOACH_CACHE_BACKEND": ("cache", "backend"),
}

_SECRET_FIELDS = ("api_key",)
_CACHE_BACKENDS = ("memory", "redis", "none")


class ConfigManager:
    """
    Manages system configuration loading, validation, and updates.
    """

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.config_path = config_path or "fitcoach_router.json"
        self.environ = os.environ if environ is None else environ
        self._config: Optional[SystemConfig] = None
        self.logger = logging.getLogger(__name__)

    def load_config(self) -> SystemConfig:
        """
        Load configuration from file (or defaults) and apply environment overrides.

        Returns:
            SystemConfig instance

        Raises:
            ConfigurationError: If configuration loading or validation fails
        """
        try:
            if Path(self.config_path).exists():
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
                config = self._dict_to_config(config_data)
                self.logger.info(f"Configuration loaded from {self.config_path}")
            else:
                config = SystemConfig()
                self.logger.info("No configuration file found, using defaults")
        except (OSError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Failed to load configuration: {str(e)}")

        self._apply_env_overrides(config)
        self._validate_config(config)
        self._config = config
        return config

    def save_config(self, config: Optional[SystemConfig] = None) -> None:
        """
        Save configuration to file. API keys are never written.

        Raises:
            ConfigurationError: If configuration saving fails
        """
        config_to_save = config or self._config
        if not config_to_save:
            raise ConfigurationError("No configuration to save")

        try:
            config_dict = self._config_to_dict(config_to_save)
            Path(self.config_path).parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(config_dict, f, indent=2, default=str)

            self.logger.info(f"Configuration saved to {self.config_path}")

        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {str(e)}")

    def get_config(self) -> SystemConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def update_config(self, updates: Dict[str, Any]) -> SystemConfig:
        """
        Update configuration with new values and persist it.

        Args:
            updates: Nested dictionary of configuration updates

        Returns:
            Updated SystemConfig instance
        """
        current_config = self.get_config()
        config_dict = asdict(current_config)
        self._deep_update(config_dict, updates)

        updated_config = self._dict_to_config(config_dict)
        self._validate_config(updated_config)

        self._config = updated_config
        self.save_config()
        return updated_config

    def _apply_env_overrides(self, config: SystemConfig) -> None:
        for env_name, (section, attr) in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                setattr(getattr(config, section), attr, value)
                self.logger.debug(f"Applied {env_name} override to {section}.{attr}")

    def _validate_config(self, config: SystemConfig) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If validation fails
        """
        if config.openai.api_key and not config.openai.api_key.startswith('sk-'):
            self.logger.warning("OpenAI API key format may be invalid")

        for name in ("deepseek", "gemini", "openai"):
            provider: AIProviderConfig = getattr(config, name)
            if provider.timeout_seconds <= 0:
                raise ConfigurationError(f"{name} timeout must be positive", config_key=f"{name}.timeout_seconds")
            if provider.cost_per_1k_tokens < 0:
                raise ConfigurationError(f"{name} cost must not be negative", config_key=f"{name}.cost_per_1k_tokens")
            if not provider.model:
                raise ConfigurationError(f"{name} model must be set", config_key=f"{name}.model")

        for name in ("fatsecret", "usda"):
            provider: NutritionProviderConfig = getattr(config, name)
            if provider.timeout_seconds <= 0:
                raise ConfigurationError(f"{name} timeout must be positive", config_key=f"{name}.timeout_seconds")

        if config.cache.backend not in _CACHE_BACKENDS:
            raise ConfigurationError(
                f"Cache backend must be one of {', '.join(_CACHE_BACKENDS)}", config_key="cache.backend")

        for category_name, ttl in config.cache.ttl_overrides.items():
            try:
                RequestCategory.from_string(category_name)
            except ValueError as e:
                raise ConfigurationError(str(e), config_key="cache.ttl_overrides")
            if ttl <= 0:
                raise ConfigurationError(f"TTL for {category_name} must be positive",
                                         config_key="cache.ttl_overrides")

        if config.router.max_workers <= 0:
            raise ConfigurationError("Router max_workers must be positive", config_key="router.max_workers")

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> SystemConfig:
        """Convert dictionary to SystemConfig object, keeping defaults for missing keys."""
        defaults = SystemConfig()

        def merged(section: str, cls):
            values = asdict(getattr(defaults, section))
            values.update(config_dict.get(section, {}))
            return cls(**values)

        return SystemConfig(
            deepseek=merged("deepseek", AIProviderConfig),
            gemini=merged("gemini", AIProviderConfig),
            openai=merged("openai", AIProviderConfig),
            fatsecret=merged("fatsecret", NutritionProviderConfig),
            usda=merged("usda", NutritionProviderConfig),
            cache=merged("cache", CacheConfig),
            router=merged("router", RouterConfig),
            logging_config=merged("logging_config", LoggingConfig),
            debug_mode=config_dict.get('debug_mode', False),
            metadata=config_dict.get('metadata', {})
        )

    def _config_to_dict(self, config: SystemConfig) -> Dict[str, Any]:
        """Convert SystemConfig object to dictionary without secrets."""
        config_dict = asdict(config)
        for section in config_dict.values():
            if isinstance(section, dict):
                for secret in _SECRET_FIELDS:
                    section.pop(secret, None)
        return config_dict

    def _deep_update(self, base_dict: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Recursively update nested dictionary."""
        for key, value in updates.items():
            if key in base_dict and isinstance(base_dict[key], dict) and isinstance(value, dict):
                self._deep_update(base_dict[key], value)
            else:
                base_dict[key] = value
