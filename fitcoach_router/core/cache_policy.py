"""
Cache policies: which TTL and which key every request category uses.

AI text keys are content hashes. Before hashing, surrounding whitespace is stripped
and internal whitespace runs are collapsed to one space; letter case is kept, so
"Plan my week" and "plan my week" are cached separately.
"""

import hashlib
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, Mapping, Optional

from ..models import FoodQuery, Payload, RequestCategory, TextPayload

AI_CACHE_PREFIX = "ai:cache:"
NUTRITION_CACHE_PREFIX = "nutrition:"
NUTRITION_GLOBAL_PREFIX = "nutrition:global:"

_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_food_name(name: str) -> str:
    """Case-insensitive, whitespace-stable food name: "  Apple " -> "apple"."""
    return collapse_whitespace(name).lower()


def text_fingerprint(text: str) -> str:
    return hashlib.sha256(collapse_whitespace(text).encode("utf-8")).hexdigest()


def ai_cache_key(category: RequestCategory, payload: Payload) -> str:
    if not isinstance(payload, TextPayload):
        raise TypeError(f"{category.name} expects a text payload")
    return f"{AI_CACHE_PREFIX}{category.slug}:{text_fingerprint(payload.content)}"


def nutrition_cache_key(category: RequestCategory, payload: Payload) -> str:
    if not isinstance(payload, FoodQuery):
        raise TypeError(f"{category.name} expects a food query")
    # repr keeps every significant digit, so distinct portions never share a slot.
    return f"{NUTRITION_GLOBAL_PREFIX}{normalize_food_name(payload.name)}:{float(payload.weight)!r}"


@dataclass(frozen=True)
class CachePolicy:
    """TTL and key derivation for one request category."""
    category: RequestCategory
    ttl: timedelta
    key_prefix: str
    key_builder: Callable[[RequestCategory, Payload], str]

    def cache_key(self, payload: Payload) -> str:
        return self.key_builder(self.category, payload)


# Fast-changing data gets short TTLs, stable reference data long ones.
DEFAULT_TTLS: Dict[RequestCategory, timedelta] = {
    RequestCategory.FOOD_ANALYSIS: timedelta(minutes=30),
    RequestCategory.NUTRITION_ADVICE: timedelta(hours=2),
    RequestCategory.PROGRESS_ANALYSIS: timedelta(minutes=15),
    RequestCategory.WORKOUT_PLANNING: timedelta(hours=6),
    RequestCategory.CHAT_RESPONSE: timedelta(minutes=5),
    RequestCategory.COMPLEX_QUERY: timedelta(minutes=60),
    RequestCategory.NUTRITION_LOOKUP: timedelta(hours=24),
}


def build_cache_policies(ttl_overrides: Optional[Mapping[str, int]] = None) -> Dict[RequestCategory, CachePolicy]:
    """
    Build the policy table for every category.

    Args:
        ttl_overrides: Optional TTLs in seconds keyed by category value

    Returns:
        Mapping of category to its CachePolicy
    """
    overrides = {
        RequestCategory.from_string(name): timedelta(seconds=seconds)
        for name, seconds in (ttl_overrides or {}).items()
    }

    policies = {}
    for category, ttl in DEFAULT_TTLS.items():
        if category is RequestCategory.NUTRITION_LOOKUP:
            prefix, builder = NUTRITION_GLOBAL_PREFIX, nutrition_cache_key
        else:
            prefix, builder = f"{AI_CACHE_PREFIX}{category.slug}:", ai_cache_key
        policies[category] = CachePolicy(
            category=category,
            ttl=overrides.get(category, ttl),
            key_prefix=prefix,
            key_builder=builder,
        )
    return policies
