"""
Ordered provider chains with fallback.
"""

from typing import Any, Dict, List, Sequence, Tuple

from ..models import ProviderResult, RequestCategory, RoutingRequest
from ..models.enums import ErrorCode, ResultStatus
from ..utils import get_logger, RoutingLogger
from ..utils.error_handling import ConfigurationError, handle_error
from .interfaces import ProviderAdapter


class ProviderChain:
    """
    Ordered list of adapters serving one request category.

    Adapters are tried strictly in the declared order (cheapest capable provider
    first). The first success wins; unavailable adapters are skipped without being
    called; each failure is logged once and the next adapter is tried.
    """

    def __init__(self, category: RequestCategory, adapters: Sequence[ProviderAdapter]):
        if not adapters:
            raise ConfigurationError(
                f"Provider chain for {category.slug} has no adapters", config_key=category.value)

        self.category = category
        self.adapters: Tuple[ProviderAdapter, ...] = tuple(adapters)
        self.logger = get_logger(__name__)
        self.routing_logger = RoutingLogger()

    def execute(self, request: RoutingRequest) -> ProviderResult:
        """
        Run the request through the chain.

        Args:
            request: The request to fulfil

        Returns:
            ProviderResult: The first successful result, or an aggregated failure naming
            every attempted provider
        """
        attempts: List[Tuple[str, str]] = []
        saw_not_found = False

        for adapter in self.adapters:
            if not adapter.is_available():
                self.logger.info(f"Skipping {adapter.name} for {self.category.slug}: not available")
                attempts.append((adapter.name, "unavailable"))
                continue

            try:
                result = adapter.invoke(request)
            except Exception as e:
                error = handle_error(e, provider=adapter.name)
                result = ProviderResult.failed(adapter.name, error.message, error_code=error.error_code)

            if result.success:
                if attempts:
                    self.logger.info(
                        f"{self.category.slug} served by {adapter.name} after {len(attempts)} fallback(s)")
                return result

            if result.status is ResultStatus.NOT_FOUND:
                self.logger.info(f"{adapter.name} has no data for {self.category.slug}, trying next provider")
                saw_not_found = True
                attempts.append((adapter.name, "no data"))
                continue

            reason = result.error_message or "unknown error"
            self.routing_logger.log_fallback(adapter.name, self.category.slug, reason, result.latency_ms)
            attempts.append((adapter.name, reason))

        return self._exhausted(attempts, saw_not_found)

    def _exhausted(self, attempts: List[Tuple[str, str]], saw_not_found: bool) -> ProviderResult:
        details = ", ".join(f"{name} ({reason})" for name, reason in attempts)
        if saw_not_found:
            status, code = ResultStatus.NOT_FOUND, ErrorCode.NOT_FOUND
            message = f"No provider had data for {self.category.slug}: {details}"
        else:
            status, code = ResultStatus.FAILED, ErrorCode.CHAIN_EXHAUSTED
            message = f"All providers failed for {self.category.slug}: {details}"

        return ProviderResult(
            status=status,
            provider="chain",
            error_code=code,
            error_message=message,
            attempted_providers=tuple(name for name, _ in attempts),
        )

    def available_providers(self) -> List[str]:
        return [adapter.name for adapter in self.adapters if adapter.is_available()]

    def describe(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "providers": [adapter.describe() for adapter in self.adapters],
        }

    def __len__(self) -> int:
        return len(self.adapters)
