"""
Application-facing facade with one method per request category.
"""

from concurrent.futures import Future
from typing import Any, Dict, Optional, Union

from ..models import FoodQuery, RequestCategory, ResponseEnvelope, TextPayload
from ..utils import get_logger
from .router import ProviderRouter


class FitnessAIService:
    """
    Thin convenience layer over ProviderRouter for the bot/API handlers.
    """

    def __init__(self, router: ProviderRouter):
        self.router = router
        self.logger = get_logger(__name__)

    def analyze_food(self, description: str, user_id: str = "anonymous") -> ResponseEnvelope:
        return self._ask(RequestCategory.FOOD_ANALYSIS, description, user_id)

    def nutrition_advice(self, question: str, user_id: str = "anonymous") -> ResponseEnvelope:
        return self._ask(RequestCategory.NUTRITION_ADVICE, question, user_id)

    def analyze_progress(self, stats: str, user_id: str = "anonymous") -> ResponseEnvelope:
        return self._ask(RequestCategory.PROGRESS_ANALYSIS, stats, user_id)

    def plan_workout(self, goals: str, user_id: str = "anonymous") -> ResponseEnvelope:
        return self._ask(RequestCategory.WORKOUT_PLANNING, goals, user_id)

    def chat(self, message: str, user_id: str = "anonymous") -> ResponseEnvelope:
        return self._ask(RequestCategory.CHAT_RESPONSE, message, user_id)

    def complex_query(self, query: str, user_id: str = "anonymous") -> ResponseEnvelope:
        return self._ask(RequestCategory.COMPLEX_QUERY, query, user_id)

    def lookup_nutrition(self, food_name: str, weight: float = 100.0,
                         user_id: str = "anonymous") -> ResponseEnvelope:
        """Nutrition facts for ``weight`` grams of ``food_name``."""
        return self.router.handle(RequestCategory.NUTRITION_LOOKUP, FoodQuery(food_name, weight), user_id)

    def submit_request(self, category: Union[RequestCategory, str], content: str,
                       user_id: str = "anonymous", weight: float = 100.0) -> "Future[ResponseEnvelope]":
        """
        Queue a request on the router's thread pool.

        Args:
            category: RequestCategory or its string value
            content: Request text, or the food name for nutrition lookups
            user_id: Caller identity
            weight: Portion weight in grams, nutrition lookups only

        Returns:
            Future resolving to the ResponseEnvelope
        """
        if isinstance(category, str):
            category = RequestCategory.from_string(category)
        if category is RequestCategory.NUTRITION_LOOKUP:
            payload = FoodQuery(content, weight)
        else:
            payload = TextPayload(content)
        return self.router.submit(category, payload, user_id)

    def clear_cache(self, category: Optional[RequestCategory] = None) -> bool:
        return self.router.clear_cache(category)

    def status(self) -> Dict[str, Any]:
        return {
            "healthy": self.router.is_healthy(),
            "categories": self.router.get_provider_status(),
        }

    def _ask(self, category: RequestCategory, text: str, user_id: str) -> ResponseEnvelope:
        return self.router.handle(category, TextPayload(text), user_id)
