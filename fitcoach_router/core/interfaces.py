"""
Provider adapter interface and LLM provider implementations.

An adapter performs exactly one backend call per invocation and reports the outcome
as a ProviderResult. Adapters never retry; trying the next provider is the chain's job.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Any, Tuple

import requests
from openai import OpenAI

from ..models import ProviderResult, RequestCategory, RoutingRequest
from ..models.config import AIProviderConfig
from ..models.enums import FailureKind
from ..utils import get_logger
from ..utils.error_handling import ProviderInvocationError, handle_error


SYSTEM_PROMPTS: Dict[RequestCategory, str] = {
    RequestCategory.FOOD_ANALYSIS: (
        "You are a nutritionist. Identify the foods in the user's description, estimate "
        "portion weights and report calories, protein, fat and carbohydrates for each item "
        "and in total. Be concise."
    ),
    RequestCategory.NUTRITION_ADVICE: (
        "You are a friendly fitness nutrition coach. Give practical, personalised advice "
        "grounded in the user's goals and current diet. Avoid medical claims."
    ),
    RequestCategory.PROGRESS_ANALYSIS: (
        "You analyse fitness and nutrition statistics. Summarise trends in the user's data, "
        "point out what is working and suggest one or two concrete adjustments."
    ),
    RequestCategory.WORKOUT_PLANNING: (
        "You are a certified personal trainer. Build a structured workout plan with "
        "exercises, sets, reps and rest periods suited to the user's level and equipment."
    ),
    RequestCategory.CHAT_RESPONSE: (
        "You are FitCoach, a supportive assistant for fitness and nutrition questions. "
        "Answer briefly and clearly."
    ),
    RequestCategory.COMPLEX_QUERY: (
        "You are an expert in sports science and dietetics. Reason carefully through the "
        "user's question step by step and give a thorough, well-structured answer."
    ),
}


class ProviderAdapter(ABC):
    """
    Base class for one backend capable of fulfilling requests.

    ``is_available`` is a cheap pre-flight check. Its answer is cached for
    ``readiness_ttl`` seconds; a rejected key or token marks the adapter not ready for
    the same period so the chain stops spending calls on it.
    """

    def __init__(self, name: str, model: Optional[str] = None, readiness_ttl: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.model = model
        self.logger = get_logger(__name__)
        self._readiness_ttl = readiness_ttl
        self._clock = clock
        self._readiness: Optional[Tuple[bool, float]] = None
        self._readiness_lock = threading.Lock()

    def is_available(self) -> bool:
        """Return True if the adapter is configured and has not recently failed fatally."""
        now = self._clock()
        with self._readiness_lock:
            if self._readiness is not None and now < self._readiness[1]:
                return self._readiness[0]

        try:
            ready = bool(self._check_ready())
        except Exception as e:
            self.logger.error(f"Readiness check for {self.name} failed: {str(e)}")
            ready = False

        with self._readiness_lock:
            self._readiness = (ready, now + self._readiness_ttl)
        return ready

    def mark_unavailable(self, reason: str) -> None:
        with self._readiness_lock:
            self._readiness = (False, self._clock() + self._readiness_ttl)
        self.logger.warning(f"{self.name} marked unavailable for {self._readiness_ttl:.0f}s: {reason}")

    def describe(self) -> Dict[str, Any]:
        return {"provider": self.name, "model": self.model, "available": self.is_available()}

    @abstractmethod
    def _check_ready(self) -> bool:
        """Side-effect-free readiness check, e.g. credentials present."""

    @abstractmethod
    def invoke(self, request: RoutingRequest) -> ProviderResult:
        """Perform one unit of work against the backend."""

    def _failure(self, error: Exception, start_time: float) -> ProviderResult:
        """Translate an exception from the backend call into a FAILED result."""
        routing_error = handle_error(error, provider=self.name)
        failure_kind = getattr(routing_error, "failure_kind", FailureKind.RETRYABLE)
        # Only a rejected credential takes the shared adapter out of rotation; other
        # fatal failures belong to this request.
        if getattr(routing_error, "credential_failure", False):
            self.mark_unavailable(routing_error.message)

        return ProviderResult.failed(
            provider=self.name,
            message=routing_error.message,
            failure_kind=failure_kind,
            error_code=routing_error.error_code,
            latency_ms=(time.time() - start_time) * 1000,
            model=self.model,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, model={self.model!r})"


class AIProviderAdapter(ProviderAdapter):
    """
    Common behaviour of LLM adapters: prompt building, usage and cost accounting.

    Subclasses implement ``_complete`` and return the generated text and the
    number of tokens the backend billed.
    """

    def __init__(self, name: str, config: AIProviderConfig, **kwargs):
        super().__init__(name, model=config.model, readiness_ttl=config.readiness_ttl_seconds, **kwargs)
        self.config = config

    def _check_ready(self) -> bool:
        return bool(self.config.api_key)

    def invoke(self, request: RoutingRequest) -> ProviderResult:
        start_time = time.time()
        system_prompt = SYSTEM_PROMPTS.get(request.category, SYSTEM_PROMPTS[RequestCategory.CHAT_RESPONSE])

        try:
            content, tokens_used = self._complete(system_prompt, request.text)
            if not content or not content.strip():
                raise ProviderInvocationError("Empty completion", provider=self.name)
        except Exception as e:
            return self._failure(e, start_time)

        latency_ms = (time.time() - start_time) * 1000
        cost = self.estimate_cost(tokens_used)
        self.logger.info(
            f"{self.name} completed {request.category.slug} in {latency_ms:.0f}ms "
            f"({tokens_used} tokens, ${cost:.5f})"
        )
        return ProviderResult.ok(
            provider=self.name,
            payload=content.strip(),
            model=self.model,
            tokens_used=tokens_used,
            cost_usd=cost,
            latency_ms=latency_ms,
        )

    def estimate_cost(self, tokens: int) -> float:
        return tokens / 1000 * self.config.cost_per_1k_tokens

    @abstractmethod
    def _complete(self, system_prompt: str, user_content: str) -> Tuple[str, int]:
        """Call the backend and return (content, tokens_used)."""


class OpenAICompatibleAdapter(AIProviderAdapter):
    """Adapter for any backend speaking the OpenAI chat completions protocol."""

    def __init__(self, name: str, config: AIProviderConfig, client: Optional[OpenAI] = None, **kwargs):
        super().__init__(name, config, **kwargs)
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url or None,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def _complete(self, system_prompt: str, user_content: str) -> Tuple[str, int]:
        response = self.client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        content = response.choices[0].message.content or ""
        tokens_used = response.usage.total_tokens if response.usage else 0
        return content, tokens_used


class DeepSeekAdapter(OpenAICompatibleAdapter):
    """DeepSeek R1 through its OpenAI-compatible endpoint; cheapest reasoning model."""

    def __init__(self, config: AIProviderConfig, client: Optional[OpenAI] = None, **kwargs):
        super().__init__("deepseek", config, client=client, **kwargs)


class OpenAIAdapter(OpenAICompatibleAdapter):
    """OpenAI GPT models; most capable and most expensive."""

    def __init__(self, config: AIProviderConfig, client: Optional[OpenAI] = None, **kwargs):
        super().__init__("openai", config, client=client, **kwargs)


class GeminiFlashAdapter(AIProviderAdapter):
    """Google Gemini Flash through the ``generateContent`` REST endpoint."""

    def __init__(self, config: AIProviderConfig, session: Optional[requests.Session] = None, **kwargs):
        super().__init__("gemini", config, **kwargs)
        self._session = session or requests.Session()

    def _complete(self, system_prompt: str, user_content: str) -> Tuple[str, int]:
        response = self._session.post(
            f"{self.config.base_url}/models/{self.config.model}:generateContent",
            headers={"x-goog-api-key": self.config.api_key},
            json={
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "contents": [{"role": "user", "parts": [{"text": user_content}]}],
                "generationConfig": {
                    "temperature": self.config.temperature,
                    "maxOutputTokens": self.config.max_tokens,
                },
            },
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()

        data = response.json()
        parts = data["candidates"][0]["content"]["parts"]
        content = "".join(part.get("text", "") for part in parts)
        tokens_used = data.get("usageMetadata", {}).get("totalTokenCount", 0)
        return content, tokens_used
