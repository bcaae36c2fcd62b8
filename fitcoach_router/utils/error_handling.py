"""
Error handling utilities and custom exceptions for the FitCoach routing core.
"""

from typing import Optional, Dict, Any, Sequence

import openai
import requests

from ..models.enums import ErrorCode, FailureKind


class FitcoachRoutingError(Exception):
    """Base exception for all routing core errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


class ConfigurationError(FitcoachRoutingError):
    """Raised when configuration is invalid, e.g. a category without a provider chain."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, error_code=ErrorCode.CONFIG_ERROR, **kwargs)
        self.config_key = config_key


class InvalidRequestError(FitcoachRoutingError):
    """Raised when a payload does not fit its request category."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.INVALID_REQUEST, **kwargs)


class ProviderUnavailableError(FitcoachRoutingError):
    """Raised when a provider fails its pre-flight check."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, error_code=ErrorCode.PROVIDER_UNAVAILABLE, **kwargs)
        self.provider = provider


class ProviderInvocationError(FitcoachRoutingError):
    """
    Raised when a backend call fails (network, auth, malformed response).

    ``credential_failure`` marks a rejected key or token: the provider cannot serve
    anyone until it is fixed. Other fatal failures concern the current request only.
    """

    def __init__(self, message: str, provider: Optional[str] = None,
                 failure_kind: FailureKind = FailureKind.RETRYABLE,
                 status_code: Optional[int] = None, credential_failure: bool = False, **kwargs):
        super().__init__(message, error_code=ErrorCode.PROVIDER_INVOCATION_FAILED, **kwargs)
        self.provider = provider
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.credential_failure = credential_failure

    @property
    def retryable(self) -> bool:
        return self.failure_kind is FailureKind.RETRYABLE


class ChainExhaustedError(FitcoachRoutingError):
    """Raised when every provider of a chain failed or was unavailable."""

    def __init__(self, message: str, attempted_providers: Optional[Sequence[str]] = None, **kwargs):
        super().__init__(message, error_code=ErrorCode.CHAIN_EXHAUSTED, **kwargs)
        self.attempted_providers = list(attempted_providers or [])


class NutritionNotFoundError(FitcoachRoutingError):
    """Raised when providers answered but none had data for the requested food."""

    def __init__(self, message: str, food_name: Optional[str] = None, **kwargs):
        super().__init__(message, error_code=ErrorCode.NOT_FOUND, **kwargs)
        self.food_name = food_name


class CacheUnavailableError(FitcoachRoutingError):
    """Raised by cache stores when the backing store cannot be reached."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        super().__init__(message, error_code=ErrorCode.CACHE_UNAVAILABLE, **kwargs)
        self.operation = operation


_RETRYABLE_HTTP_STATUSES = {408, 425, 429, 500, 502, 503, 504}
_CREDENTIAL_HTTP_STATUSES = {401, 403}


def classify_http_status(status_code: Optional[int]) -> FailureKind:
    """Timeouts, throttling and server errors are worth trying elsewhere again later."""
    if status_code is None or status_code in _RETRYABLE_HTTP_STATUSES or status_code >= 500:
        return FailureKind.RETRYABLE
    return FailureKind.FATAL


def handle_error(error: Exception, logger=None, context: Optional[Dict[str, Any]] = None,
                 provider: Optional[str] = None) -> FitcoachRoutingError:
    """
    Convert foreign exceptions to FitcoachRoutingError instances.

    Args:
        error: The original exception
        logger: Optional RoutingLogger for error reporting
        context: Additional context information
        provider: Provider name when the error came from a backend call

    Returns:
        FitcoachRoutingError instance
    """
    if isinstance(error, FitcoachRoutingError):
        return error

    if isinstance(error, requests.exceptions.HTTPError):
        status = error.response.status_code if error.response is not None else None
        routing_error = ProviderInvocationError(
            f"HTTP {status}: {str(error)}", provider=provider,
            failure_kind=classify_http_status(status), status_code=status,
            credential_failure=status in _CREDENTIAL_HTTP_STATUSES, context=context)
    elif isinstance(error, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        routing_error = ProviderInvocationError(
            f"Connection failed: {str(error)}", provider=provider,
            failure_kind=FailureKind.RETRYABLE, context=context)
    elif isinstance(error, (openai.APITimeoutError, openai.APIConnectionError)):
        routing_error = ProviderInvocationError(
            f"Connection failed: {str(error)}", provider=provider,
            failure_kind=FailureKind.RETRYABLE, context=context)
    elif isinstance(error, openai.APIStatusError):
        routing_error = ProviderInvocationError(
            f"API error {error.status_code}: {error.message}", provider=provider,
            failure_kind=classify_http_status(error.status_code),
            status_code=error.status_code,
            credential_failure=error.status_code in _CREDENTIAL_HTTP_STATUSES, context=context)
    elif isinstance(error, TimeoutError):
        routing_error = ProviderInvocationError(
            f"Operation timed out: {str(error)}", provider=provider,
            failure_kind=FailureKind.RETRYABLE, context=context)
    elif isinstance(error, (ValueError, KeyError, IndexError, TypeError)) and provider:
        routing_error = ProviderInvocationError(
            f"Malformed response: {error!r}", provider=provider,
            failure_kind=FailureKind.FATAL, context=context)
    else:
        routing_error = FitcoachRoutingError(str(error), context=context)

    if logger:
        logger.log_error(routing_error, context)

    return routing_error
