"""
Enumerations for the FitCoach routing core.
"""

from enum import Enum, auto


class Domain(Enum):
    """Request families served by the router."""
    AI = "ai"
    NUTRITION = "nutrition"


class RequestCategory(Enum):
    """Categories of incoming requests; each owns one provider chain and one cache policy."""
    FOOD_ANALYSIS = "food_analysis"
    NUTRITION_ADVICE = "nutrition_advice"
    PROGRESS_ANALYSIS = "progress_analysis"
    WORKOUT_PLANNING = "workout_planning"
    CHAT_RESPONSE = "chat_response"
    COMPLEX_QUERY = "complex_query"
    NUTRITION_LOOKUP = "nutrition_lookup"

    @property
    def domain(self) -> Domain:
        if self is RequestCategory.NUTRITION_LOOKUP:
            return Domain.NUTRITION
        return Domain.AI

    @property
    def slug(self) -> str:
        """Lower-case name used in cache keys and logs."""
        return self.value

    @classmethod
    def from_string(cls, name: str) -> "RequestCategory":
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown request category: {name}")


class ResultStatus(Enum):
    """Outcome of a single provider invocation or chain traversal."""
    SUCCESS = auto()
    NOT_FOUND = auto()
    FAILED = auto()
    UNAVAILABLE = auto()


class FailureKind(Enum):
    """Whether a failed provider call could succeed on another attempt."""
    RETRYABLE = auto()
    FATAL = auto()


class ErrorCode(Enum):
    """Error codes exposed in envelopes and raised errors."""
    CONFIG_ERROR = "CONFIG_ERROR"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    PROVIDER_INVOCATION_FAILED = "PROVIDER_INVOCATION_FAILED"
    CHAIN_EXHAUSTED = "CHAIN_EXHAUSTED"
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"
    INTERNAL_ERROR = "INTERNAL_ERROR"
