"""
Logging utilities for the FitCoach routing core.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

from ..models.config import LoggingConfig

ROOT_LOGGER_NAME = "fitcoach_router"

# HTTP client libraries log every request at INFO/DEBUG.
_NOISY_LOGGERS = ("urllib3", "httpx", "openai", "redis")


def _build_handlers(config: LoggingConfig) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if config.enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    if config.enable_file and config.file_path:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        ))
    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the package logger tree: console and/or rotating file output.

    Args:
        config: Logging configuration settings
    """
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(config.level)
    package_logger.handlers.clear()

    formatter = logging.Formatter(config.format)
    for handler in _build_handlers(config):
        handler.setLevel(config.level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(config.level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class RoutingLogger:
    """
    Structured logger for fallback, cache and error events.
    """

    def __init__(self, name: str = "routing"):
        self.logger = get_logger(name)

    def log_fallback(self, provider: str, category: str, reason: str,
                     latency_ms: float = 0.0) -> None:
        """Log a provider failure that sends the chain to its next adapter."""
        self.logger.warning(
            f"Provider {provider} failed for {category}, falling back: {reason}",
            extra={
                "event_type": "fallback",
                "provider": provider,
                "category": category,
                "reason": reason,
                "latency_ms": latency_ms,
            }
        )

    def log_cache_event(self, operation: str, key: str, error: Optional[Exception] = None) -> None:
        """Log a cache hit/miss/store, or a cache failure that is being ignored."""
        if error is not None:
            self.logger.warning(
                f"Cache {operation} failed for {key}, continuing without cache: {error}",
                extra={
                    "event_type": "cache_error",
                    "operation": operation,
                    "cache_key": key,
                    "error_type": type(error).__name__,
                }
            )
            return
        self.logger.debug(
            f"Cache {operation}: {key}",
            extra={"event_type": "cache", "operation": operation, "cache_key": key}
        )

    def log_error(self, error: Exception, context: Optional[dict] = None) -> None:
        """Log an error with optional context."""
        self.logger.error(
            f"Error occurred: {str(error)}",
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "context": context or {}
            },
            exc_info=error
        )
