"""
Nutrition data adapters.

Every backend reports nutrients for a reference weight (usually 100 g). Adapters fetch
those reference facts and rescale them to the requested portion, so all of them return
the same NutritionFacts shape.
"""

import re
import time
from abc import abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from ..models import FoodQuery, NutritionFacts, ProviderResult, RoutingRequest
from ..models.config import NutritionProviderConfig
from ..models.enums import FailureKind
from ..utils.error_handling import ProviderInvocationError, InvalidRequestError
from .cache_policy import normalize_food_name
from .interfaces import ProviderAdapter


class NutritionProviderAdapter(ProviderAdapter):
    """Base class: fetch reference facts, validate, scale to the requested weight."""

    def invoke(self, request: RoutingRequest) -> ProviderResult:
        start_time = time.time()
        query = request.payload
        if not isinstance(query, FoodQuery):
            return self._failure(InvalidRequestError("Nutrition lookup needs a food query"), start_time)

        try:
            reference = self.fetch_reference(query.name)
        except Exception as e:
            return self._failure(e, start_time)

        latency_ms = (time.time() - start_time) * 1000
        if reference is None:
            self.logger.info(f"{self.name} has no data for '{query.name}' ({latency_ms:.0f}ms)")
            return ProviderResult.not_found(
                self.name, f"{self.name} has no data for '{query.name}'", latency_ms=latency_ms)

        if not reference.is_valid():
            return self._failure(
                ProviderInvocationError(f"Invalid nutrition data for '{query.name}'",
                                        provider=self.name, failure_kind=FailureKind.RETRYABLE),
                start_time)

        facts = reference.scale_to_weight(query.weight)
        self.logger.info(f"{self.name} result ({latency_ms:.0f}ms): {facts.summary}")
        return ProviderResult.ok(provider=self.name, payload=facts, model=self.model, latency_ms=latency_ms)

    @abstractmethod
    def fetch_reference(self, food_name: str) -> Optional[NutritionFacts]:
        """Return facts at the backend's reference weight, or None when the food is unknown."""


class FatSecretAdapter(NutritionProviderAdapter):
    """
    FatSecret Platform ``foods.search``.

    Uses an already-issued OAuth 2.0 bearer token from configuration. Nutrients come
    from the food description, e.g.
    "Per 100g - Calories: 250kcal | Fat: 15.00g | Carbs: 20.00g | Protein: 10.00g".
    """

    _REFERENCE = re.compile(r"^\s*per\s+(\d+(?:\.\d+)?)\s*g\b", re.IGNORECASE)
    _NUTRIENT = re.compile(r"(calories|fat|carbs|protein):\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
    # FatSecret error codes for missing/invalid/expired credentials.
    _AUTH_ERRORS = {2, 3, 4, 5, 6, 7, 8, 9, 13, 14, 21}

    def __init__(self, config: NutritionProviderConfig, session: Optional[requests.Session] = None, **kwargs):
        super().__init__("fatsecret", model="foods.search", readiness_ttl=config.readiness_ttl_seconds, **kwargs)
        self.config = config
        self._session = session or requests.Session()

    def _check_ready(self) -> bool:
        if not self.config.api_key:
            self.logger.debug("FatSecret is not configured (no access token)")
            return False
        return True

    def fetch_reference(self, food_name: str) -> Optional[NutritionFacts]:
        response = self._session.get(
            self.config.base_url,
            params={
                "method": "foods.search",
                "search_expression": food_name,
                "format": "json",
                "max_results": self.config.max_results,
            },
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()
        data = response.json()

        if "error" in data:
            code = int(data["error"].get("code", 0))
            credential_failure = code in self._AUTH_ERRORS
            raise ProviderInvocationError(
                f"FatSecret error {code}: {data['error'].get('message', '')}",
                provider=self.name,
                failure_kind=FailureKind.FATAL if credential_failure else FailureKind.RETRYABLE,
                credential_failure=credential_failure)

        for food in self._iter_foods(data):
            facts = self.parse_food(food)
            if facts is not None:
                return facts
        return None

    @staticmethod
    def _iter_foods(data: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
        foods = (data.get("foods") or {}).get("food") or []
        # A single match is returned as an object rather than a list.
        if isinstance(foods, dict):
            foods = [foods]
        return foods

    @classmethod
    def parse_food(cls, food: Dict[str, Any]) -> Optional[NutritionFacts]:
        """Parse one search hit; hits without a positive gram reference or calories are skipped."""
        description = food.get("food_description") or ""
        reference = cls._REFERENCE.match(description)
        if not reference:
            return None
        reference_weight = float(reference.group(1))
        if reference_weight <= 0:
            return None

        values = {name.lower(): float(value) for name, value in cls._NUTRIENT.findall(description)}
        if "calories" not in values:
            return None

        return NutritionFacts(
            name=food.get("food_name", ""),
            calories=values["calories"],
            protein=values.get("protein", 0.0),
            carbohydrates=values.get("carbs", 0.0),
            fat=values.get("fat", 0.0),
            weight=reference_weight,
            source="FatSecret",
        )


class USDAAdapter(NutritionProviderAdapter):
    """USDA FoodData Central ``/foods/search``; values are per 100 g."""

    # Lower index = preferred data type.
    DATA_TYPE_PRIORITY = ("SR Legacy", "Foundation", "Survey (FNDDS)", "Branded")

    # Nutrient numbers -> NutritionFacts fields.
    NUTRIENT_NUMBERS = {
        "203": "protein",
        "204": "fat",
        "205": "carbohydrates",
        "291": "fiber",
        "269": "sugar",
        "307": "sodium",
        "401": "vitamin_c",
        "301": "calcium",
        "303": "iron",
        "306": "potassium",
    }
    # Energy in kcal; Foundation foods sometimes only carry the Atwater variants.
    ENERGY_NUMBERS = ("208", "958", "957")

    def __init__(self, config: NutritionProviderConfig, session: Optional[requests.Session] = None, **kwargs):
        super().__init__("usda", model="fdc/v1", readiness_ttl=config.readiness_ttl_seconds, **kwargs)
        self.config = config
        self._session = session or requests.Session()

    def _check_ready(self) -> bool:
        return bool(self.config.api_key)

    def fetch_reference(self, food_name: str) -> Optional[NutritionFacts]:
        response = self._session.get(
            f"{self.config.base_url}/foods/search",
            params={
                "api_key": self.config.api_key,
                "query": food_name,
                "pageSize": self.config.max_results,
            },
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()
        foods = response.json().get("foods") or []

        for food in sorted(foods, key=self._priority):
            facts = self.parse_food(food)
            if facts is not None:
                return facts
        return None

    @classmethod
    def _priority(cls, food: Dict[str, Any]) -> int:
        try:
            return cls.DATA_TYPE_PRIORITY.index(food.get("dataType"))
        except ValueError:
            return len(cls.DATA_TYPE_PRIORITY)

    @classmethod
    def parse_food(cls, food: Dict[str, Any]) -> Optional[NutritionFacts]:
        by_number: Dict[str, float] = {}
        for nutrient in food.get("foodNutrients") or []:
            number = str(nutrient.get("nutrientNumber", ""))
            value = nutrient.get("value")
            if number and value is not None:
                by_number.setdefault(number, float(value))

        calories = next((by_number[n] for n in cls.ENERGY_NUMBERS if n in by_number), None)
        if calories is None:
            return None

        values = {field: by_number.get(number) for number, field in cls.NUTRIENT_NUMBERS.items()}
        return NutritionFacts(
            name=food.get("description", ""),
            calories=calories,
            protein=values.pop("protein") or 0.0,
            carbohydrates=values.pop("carbohydrates") or 0.0,
            fat=values.pop("fat") or 0.0,
            weight=100.0,
            source="USDA FoodData Central",
            **values,
        )


# name, kcal, protein, carbs, fat, aliases, optional nutrients; all per 100 g.
_PRODUCTS: List[Tuple[str, float, float, float, float, Tuple[str, ...], Dict[str, float]]] = [
    ("chicken breast", 165, 31.0, 0.0, 3.6,
     ("grilled chicken breast", "chicken fillet", "куриная грудка", "курица"), {"sodium": 74}),
    ("boiled egg", 155, 12.6, 1.1, 10.6, ("egg", "eggs", "яйцо"), {"sodium": 124}),
    ("salmon", 208, 20.0, 0.0, 13.0, ("семга", "лосось"), {}),
    ("tuna in water", 116, 25.5, 0.0, 0.8, ("canned tuna", "tuna"), {}),
    ("lean beef", 250, 26.0, 0.0, 15.0, ("beef", "говядина"), {"iron": 2.6}),
    ("cottage cheese", 121, 17.0, 1.8, 5.0, ("творог",), {"calcium": 83}),
    ("greek yogurt", 59, 10.0, 3.6, 0.4, ("yogurt", "йогурт"), {"sugar": 3.2, "calcium": 110}),
    ("milk", 52, 2.8, 4.7, 2.5, ("молоко",), {"sugar": 4.7, "calcium": 120}),
    ("kefir", 51, 3.0, 4.0, 2.5, ("кефир",), {}),
    ("white rice", 130, 2.7, 28.2, 0.3, ("rice", "cooked rice", "рис"), {"fiber": 0.4}),
    ("buckwheat", 92, 3.4, 19.9, 0.6, ("buckwheat porridge", "гречка", "гречневая каша"), {"fiber": 2.7}),
    ("oatmeal", 71, 2.5, 12.0, 1.5, ("porridge", "oats", "овсянка", "овсяная каша"), {"fiber": 1.7}),
    ("pasta", 158, 5.8, 30.9, 0.9, ("spaghetti", "макароны"), {"fiber": 1.8}),
    ("whole wheat bread", 247, 13.0, 41.0, 3.4, ("bread", "хлеб"), {"fiber": 7.0}),
    ("boiled potato", 87, 1.9, 20.1, 0.1, ("potato", "potatoes", "картофель"), {"fiber": 1.8, "potassium": 379}),
    ("lentils", 116, 9.0, 20.0, 0.4, ("чечевица",), {"fiber": 7.9}),
    ("apple", 52, 0.3, 13.8, 0.2, ("яблоко",), {"fiber": 2.4, "sugar": 10.4, "vitamin_c": 4.6}),
    ("banana", 89, 1.1, 22.8, 0.3, ("банан",), {"fiber": 2.6, "sugar": 12.2, "potassium": 358}),
    ("orange", 47, 0.9, 11.8, 0.1, ("апельсин",), {"fiber": 2.4, "sugar": 9.4, "vitamin_c": 53.2}),
    ("avocado", 160, 2.0, 8.5, 14.7, ("авокадо",), {"fiber": 6.7, "potassium": 485}),
    ("broccoli", 34, 2.8, 6.6, 0.4, ("брокколи",), {"fiber": 2.6, "vitamin_c": 89.2}),
    ("tomato", 18, 0.9, 3.9, 0.2, ("tomatoes", "помидор"), {"fiber": 1.2}),
    ("cucumber", 15, 0.7, 3.6, 0.1, ("огурец",), {"fiber": 0.5}),
    ("almonds", 579, 21.0, 22.0, 50.0, ("миндаль",), {"fiber": 12.5}),
    ("olive oil", 884, 0.0, 0.0, 100.0, ("оливковое масло",), {}),
    ("borscht", 49, 1.1, 6.7, 2.2, ("borsch", "борщ"), {}),
    ("syrniki", 220, 13.0, 20.0, 10.0, ("cottage cheese pancakes", "сырники"), {}),
    ("pelmeni", 275, 11.9, 29.0, 12.4, ("dumplings", "пельмени"), {}),
]


class LocalProductsAdapter(NutritionProviderAdapter):
    """In-process table of common foods; always available, used as the last resort."""

    def __init__(self, products: Optional[Iterable[Tuple]] = None, **kwargs):
        super().__init__("local", model="products-db", **kwargs)
        self._products: Dict[str, NutritionFacts] = {}
        self._aliases: Dict[str, str] = {}
        for name, kcal, protein, carbs, fat, aliases, extra in (products or _PRODUCTS):
            key = normalize_food_name(name)
            self._products[key] = NutritionFacts(
                name=name, calories=kcal, protein=protein, carbohydrates=carbs, fat=fat,
                weight=100.0, source="Local products database", **extra)
            for alias in aliases:
                self._aliases[normalize_food_name(alias)] = key
        self.logger.info(f"Local products database loaded: {len(self._products)} products")

    def _check_ready(self) -> bool:
        return True

    def fetch_reference(self, food_name: str) -> Optional[NutritionFacts]:
        key = normalize_food_name(food_name)
        if not key:
            return None

        if key in self._products:
            return self._products[key]
        if key in self._aliases:
            return self._products[self._aliases[key]]

        # Fuzzy match: the longest known name contained in the query as whole words.
        padded = f" {key} "
        candidates = [
            (len(known), product_key)
            for known, product_key in list(self._aliases.items()) + [(k, k) for k in self._products]
            if f" {known} " in padded
        ]
        if candidates:
            _, product_key = max(candidates)
            self.logger.debug(f"Fuzzy match: '{food_name}' -> '{product_key}'")
            return self._products[product_key]
        return None
