"""
Core data models for request routing, provider results and caller-facing envelopes.
"""

import json
import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Dict, Any, Optional, Tuple, Union

from .enums import Domain, RequestCategory, ResultStatus, FailureKind, ErrorCode


@dataclass(frozen=True)
class TextPayload:
    """Free-text content of an AI request."""
    content: str


@dataclass(frozen=True)
class FoodQuery:
    """Food name and portion weight (grams) of a nutrition lookup."""
    name: str
    weight: float = 100.0


Payload = Union[TextPayload, FoodQuery]


@dataclass(frozen=True)
class RoutingRequest:
    """A single request handed to a provider chain."""
    category: RequestCategory
    payload: Payload
    originator_id: str = "anonymous"
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def text(self) -> str:
        if isinstance(self.payload, TextPayload):
            return self.payload.content
        return self.payload.name


# Optional nutrients: None means "not reported", which is not the same as 0.
OPTIONAL_NUTRIENTS = ("fiber", "sugar", "sodium", "vitamin_c", "calcium", "iron", "potassium")
REQUIRED_NUTRIENTS = ("calories", "protein", "carbohydrates", "fat")

_JSON_NAMES = {"vitamin_c": "vitaminC"}


@dataclass(frozen=True)
class NutritionFacts:
    """Unified nutrition facts for one food at a given weight (grams)."""
    name: str
    calories: float
    protein: float
    carbohydrates: float
    fat: float
    weight: float = 100.0
    source: str = ""
    fiber: Optional[float] = None
    sugar: Optional[float] = None
    sodium: Optional[float] = None      # mg
    vitamin_c: Optional[float] = None   # mg
    calcium: Optional[float] = None     # mg
    iron: Optional[float] = None        # mg
    potassium: Optional[float] = None   # mg

    def scale_to_weight(self, target_weight: float) -> "NutritionFacts":
        """Linearly rescale every nutrient from this weight to ``target_weight``."""
        if self.weight <= 0:
            return self

        factor = target_weight / self.weight
        scaled: Dict[str, Any] = {
            nutrient: getattr(self, nutrient) * factor for nutrient in REQUIRED_NUTRIENTS
        }
        for nutrient in OPTIONAL_NUTRIENTS:
            value = getattr(self, nutrient)
            scaled[nutrient] = value * factor if value is not None else None

        return replace(self, weight=target_weight, **scaled)

    def is_valid(self) -> bool:
        """Named, with a positive reference weight and non-negative required nutrients."""
        if not (self.name and self.name.strip()):
            return False
        if not math.isfinite(self.weight) or self.weight <= 0:
            return False
        return all(
            math.isfinite(getattr(self, nutrient)) and getattr(self, nutrient) >= 0
            for nutrient in REQUIRED_NUTRIENTS
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[_JSON_NAMES.get(f.name, f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NutritionFacts":
        reverse = {json_name: name for name, json_name in _JSON_NAMES.items()}
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = reverse.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    @property
    def summary(self) -> str:
        return (f"{self.name}: {self.calories:.1f} kcal, "
                f"{self.protein:.1f}/{self.fat:.1f}/{self.carbohydrates:.1f} P/F/C "
                f"({self.weight:g}g) [{self.source}]")


@dataclass(frozen=True)
class ProviderResult:
    """
    Result of one provider invocation, or the aggregated result of a chain traversal.

    Never mutated after creation. The JSON form is what gets stored in the cache.
    """
    status: ResultStatus
    provider: str
    payload: Optional[Union[str, NutritionFacts]] = None
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    cost_usd: Optional[float] = None
    latency_ms: float = 0.0
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    attempted_providers: Tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.status is ResultStatus.SUCCESS

    @classmethod
    def ok(cls, provider: str, payload: Union[str, NutritionFacts], model: Optional[str] = None,
           tokens_used: Optional[int] = None, cost_usd: Optional[float] = None,
           latency_ms: float = 0.0) -> "ProviderResult":
        return cls(
            status=ResultStatus.SUCCESS,
            provider=provider,
            payload=payload,
            model=model,
            tokens_used=tokens_used,
            cost_usd=cost_usd,
            latency_ms=latency_ms,
        )

    @classmethod
    def not_found(cls, provider: str, message: str, latency_ms: float = 0.0) -> "ProviderResult":
        return cls(
            status=ResultStatus.NOT_FOUND,
            provider=provider,
            error_code=ErrorCode.NOT_FOUND,
            error_message=message,
            latency_ms=latency_ms,
        )

    @classmethod
    def failed(cls, provider: str, message: str,
               failure_kind: FailureKind = FailureKind.RETRYABLE,
               error_code: ErrorCode = ErrorCode.PROVIDER_INVOCATION_FAILED,
               latency_ms: float = 0.0, model: Optional[str] = None) -> "ProviderResult":
        return cls(
            status=ResultStatus.FAILED,
            provider=provider,
            model=model,
            error_code=error_code,
            error_message=message,
            failure_kind=failure_kind,
            latency_ms=latency_ms,
        )

    def to_json(self) -> str:
        if isinstance(self.payload, NutritionFacts):
            payload_type, payload = "nutrition", self.payload.to_dict()
        else:
            payload_type, payload = "text", self.payload

        return json.dumps({
            "status": self.status.name,
            "provider": self.provider,
            "payloadType": payload_type,
            "payload": payload,
            "model": self.model,
            "tokensUsed": self.tokens_used,
            "costUsd": self.cost_usd,
            "latencyMs": self.latency_ms,
        }, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "ProviderResult":
        """Rebuild a cached result; raises ValueError/KeyError on malformed entries."""
        data = json.loads(raw)
        payload = data.get("payload")
        if data.get("payloadType") == "nutrition":
            payload = NutritionFacts.from_dict(payload)

        return cls(
            status=ResultStatus[data["status"]],
            provider=data["provider"],
            payload=payload,
            model=data.get("model"),
            tokens_used=data.get("tokensUsed"),
            cost_usd=data.get("costUsd"),
            latency_ms=data.get("latencyMs") or 0.0,
        )


@dataclass
class ResponseEnvelope:
    """Caller-visible result of ``ProviderRouter.handle``."""
    success: bool
    category: RequestCategory
    content: Optional[str] = None
    nutrition: Optional[NutritionFacts] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    cost_usd: Optional[float] = None
    source: Optional[str] = None
    processing_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    from_cache: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_result(cls, category: RequestCategory, result: ProviderResult,
                    from_cache: bool = False) -> "ResponseEnvelope":
        envelope = cls(
            success=result.success,
            category=category,
            provider=result.provider,
            model=result.model,
            from_cache=from_cache,
        )
        if isinstance(result.payload, NutritionFacts):
            envelope.nutrition = result.payload
            envelope.source = result.payload.source or result.provider
        else:
            envelope.content = result.payload
            envelope.tokens_used = result.tokens_used
            envelope.cost_usd = result.cost_usd
        return envelope

    @classmethod
    def error(cls, category: RequestCategory, message: str, error_code: ErrorCode) -> "ResponseEnvelope":
        return cls(success=False, category=category, error_message=message, error_code=error_code)

    def with_processing_time(self, processing_time_ms: float) -> "ResponseEnvelope":
        self.processing_time_ms = int(round(processing_time_ms))
        return self

    def to_dict(self) -> Dict[str, Any]:
        """JSON object exposed to the application layer."""
        data: Dict[str, Any] = {
            "success": self.success,
            "category": self.category.value,
            "provider": self.provider,
            "model": self.model,
            "processingTimeMs": self.processing_time_ms,
            "fromCache": self.from_cache,
            "createdAt": self.created_at.isoformat(),
        }
        if self.category.domain is Domain.NUTRITION:
            data["nutrition"] = self.nutrition.to_dict() if self.nutrition else None
            data["source"] = self.source
        else:
            data["content"] = self.content
            data["tokensUsed"] = self.tokens_used
            data["costUsd"] = self.cost_usd
        if not self.success:
            data["errorMessage"] = self.error_message
            data["errorCode"] = self.error_code.value if self.error_code else None
        return data

    @property
    def log_summary(self) -> str:
        return (f"provider={self.provider}, model={self.model}, success={self.success}, "
                f"tokens={self.tokens_used or 0}, cost=${self.cost_usd or 0.0:.4f}, "
                f"cached={self.from_cache}, time={self.processing_time_ms or 0}ms")
