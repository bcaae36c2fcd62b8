"""
Shared fixtures: scripted provider adapters and a controllable clock.
"""

from typing import Dict, Iterable, Optional

import pytest

from fitcoach_router.core.cache import InMemoryCacheStore
from fitcoach_router.core.chain import ProviderChain
from fitcoach_router.core.interfaces import ProviderAdapter
from fitcoach_router.core.router import ProviderRouter
from fitcoach_router.models import (
    FoodQuery, NutritionFacts, ProviderResult, RequestCategory, RoutingRequest
)
from fitcoach_router.models.config import RouterConfig


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubAdapter(ProviderAdapter):
    """
    Adapter with a scripted outcome: "success", "fail", "not_found" or "raise".

    Counts invocations so tests can assert that cached requests never reach it.
    """

    def __init__(self, name: str, outcome: str = "success", available: bool = True,
                 content: str = "stub answer", cost_usd: float = 0.0, tokens_used: int = 10,
                 facts: Optional[NutritionFacts] = None, **kwargs):
        super().__init__(name, model=f"{name}-model", **kwargs)
        self.outcome = outcome
        self.available = available
        self.content = content
        self.cost_usd = cost_usd
        self.tokens_used = tokens_used
        self.facts = facts
        self.calls = 0
        self.requests = []

    def _check_ready(self) -> bool:
        return self.available

    def invoke(self, request: RoutingRequest) -> ProviderResult:
        self.calls += 1
        self.requests.append(request)

        if self.outcome == "raise":
            raise RuntimeError(f"{self.name} exploded")
        if self.outcome == "fail":
            return ProviderResult.failed(self.name, f"{self.name} timed out", model=self.model)
        if self.outcome == "not_found":
            return ProviderResult.not_found(self.name, f"{self.name} has no data")

        if isinstance(request.payload, FoodQuery):
            facts = self.facts or NutritionFacts(
                name=request.payload.name, calories=100, protein=10, carbohydrates=10, fat=1,
                source=self.name)
            return ProviderResult.ok(self.name, facts.scale_to_weight(request.payload.weight), model=self.model)
        return ProviderResult.ok(self.name, self.content, model=self.model,
                                 tokens_used=self.tokens_used, cost_usd=self.cost_usd)


def make_chains(overrides: Optional[Dict[RequestCategory, Iterable[ProviderAdapter]]] = None
                ) -> Dict[RequestCategory, ProviderChain]:
    """A chain for every category; categories not overridden get one succeeding stub."""
    overrides = overrides or {}
    return {
        category: ProviderChain(category, list(overrides.get(category, [StubAdapter(f"default-{category.value}")])))
        for category in RequestCategory
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_store(clock):
    return InMemoryCacheStore(max_entries=100, clock=clock)


@pytest.fixture
def router_factory(cache_store):
    """Build routers over the shared in-memory cache; shuts them down after the test."""
    routers = []

    def factory(overrides=None, store=None, **kwargs):
        router = ProviderRouter(
            chains=make_chains(overrides),
            cache_store=store if store is not None else cache_store,
            config=RouterConfig(max_workers=2),
            **kwargs,
        )
        routers.append(router)
        return router

    yield factory

    for router in routers:
        router.shutdown(wait=False)
