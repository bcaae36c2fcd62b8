"""
Tests for nutrition facts scaling and the nutrition data adapters.
"""

from unittest.mock import Mock

import pytest
import requests

from fitcoach_router.core.nutrition import FatSecretAdapter, LocalProductsAdapter, USDAAdapter
from fitcoach_router.models import FoodQuery, NutritionFacts, RequestCategory, RoutingRequest
from fitcoach_router.models.config import NutritionProviderConfig
from fitcoach_router.models.enums import FailureKind, ResultStatus


def _lookup(name, weight=100.0):
    return RoutingRequest(category=RequestCategory.NUTRITION_LOOKUP, payload=FoodQuery(name, weight))


def _session_returning(data, status_code=200):
    response = Mock(status_code=status_code)
    response.json.return_value = data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} error", response=response)
    session = Mock()
    session.get.return_value = response
    return session


class TestNutritionFacts:
    """Scaling and serialization of NutritionFacts."""

    def test_scale_to_weight(self):
        facts = NutritionFacts(name="test", calories=250, protein=10, carbohydrates=30, fat=5)

        scaled = facts.scale_to_weight(150)

        assert scaled.calories == pytest.approx(375)
        assert scaled.protein == pytest.approx(15)
        assert scaled.fat == pytest.approx(7.5)
        assert scaled.carbohydrates == pytest.approx(45)
        assert scaled.weight == 150
        assert scaled.fiber is None

    def test_scale_optional_nutrients_present(self):
        facts = NutritionFacts(name="apple", calories=52, protein=0.3, carbohydrates=13.8, fat=0.2,
                               fiber=2.4, vitamin_c=4.6)

        scaled = facts.scale_to_weight(50)

        assert scaled.fiber == pytest.approx(1.2)
        assert scaled.vitamin_c == pytest.approx(2.3)
        assert scaled.sodium is None

    def test_zero_reference_weight_unchanged(self):
        facts = NutritionFacts(name="odd", calories=10, protein=1, carbohydrates=1, fat=1, weight=0)
        assert facts.scale_to_weight(200) is facts

    def test_to_dict_omits_absent_nutrients(self):
        data = NutritionFacts(name="x", calories=1, protein=1, carbohydrates=1, fat=1, vitamin_c=3).to_dict()
        assert data["vitaminC"] == 3
        assert "fiber" not in data
        assert NutritionFacts.from_dict(data).vitamin_c == 3

    def test_is_valid(self):
        assert NutritionFacts(name="x", calories=0, protein=0, carbohydrates=0, fat=0).is_valid()
        assert not NutritionFacts(name=" ", calories=1, protein=1, carbohydrates=1, fat=1).is_valid()
        assert not NutritionFacts(name="x", calories=-1, protein=1, carbohydrates=1, fat=1).is_valid()
        assert not NutritionFacts(name="x", calories=1, protein=1, carbohydrates=1, fat=1, weight=0).is_valid()
        assert not NutritionFacts(name="x", calories=float("nan"), protein=1, carbohydrates=1, fat=1).is_valid()


class TestFatSecretAdapter:
    """FatSecretAdapter parsing and error classification."""

    def setup_method(self):
        self.config = NutritionProviderConfig(api_key="token", base_url="https://fatsecret.test/rest")

    def test_not_available_without_token(self):
        adapter = FatSecretAdapter(NutritionProviderConfig(), session=Mock())
        assert adapter.is_available() is False

    def test_parses_description_and_scales(self):
        session = _session_returning({"foods": {"food": [{
            "food_name": "Chicken Breast",
            "food_description": "Per 100g - Calories: 165kcal | Fat: 3.60g | Carbs: 0.00g | Protein: 31.00g",
        }]}})
        adapter = FatSecretAdapter(self.config, session=session)

        result = adapter.invoke(_lookup("chicken breast", 200))

        assert result.success
        assert result.provider == "fatsecret"
        assert result.payload.calories == pytest.approx(330)
        assert result.payload.protein == pytest.approx(62)
        assert result.payload.fat == pytest.approx(7.2)
        assert result.payload.weight == 200
        assert result.payload.source == "FatSecret"

        _, kwargs = session.get.call_args
        assert kwargs["params"]["search_expression"] == "chicken breast"
        assert kwargs["headers"]["Authorization"] == "Bearer token"

    def test_single_food_object_and_non_gram_reference(self):
        food = {"food_name": "Yogurt", "food_description": "Per 1 cup - Calories: 150kcal | Protein: 8.00g"}
        assert FatSecretAdapter.parse_food(food) is None

        food["food_description"] = "Per 50g - Calories: 30kcal | Fat: 0.2g | Carbs: 2g | Protein: 5g"
        facts = FatSecretAdapter.parse_food(food)
        assert facts.weight == 50
        assert facts.scale_to_weight(100).calories == pytest.approx(60)

        session = _session_returning({"foods": {"food": food}})
        result = FatSecretAdapter(self.config, session=session).invoke(_lookup("yogurt", 100))
        assert result.success

    def test_zero_gram_reference_skipped(self):
        session = _session_returning({"foods": {"food": [
            {"food_name": "Broken", "food_description": "Per 0g - Calories: 10kcal | Fat: 0g | Carbs: 0g | Protein: 0g"},
            {"food_name": "Apple", "food_description": "Per 100g - Calories: 52kcal | Fat: 0.2g | Carbs: 14g | Protein: 0.3g"},
        ]}})
        adapter = FatSecretAdapter(self.config, session=session)

        result = adapter.invoke(_lookup("apple", 200))

        assert result.success
        assert result.payload.name == "Apple"
        assert result.payload.weight == 200
        assert result.payload.calories == pytest.approx(104)

    def test_no_foods_is_not_found(self):
        adapter = FatSecretAdapter(self.config, session=_session_returning({"foods": {"total_results": "0"}}))

        result = adapter.invoke(_lookup("nonexistent_food_xyz"))

        assert result.status is ResultStatus.NOT_FOUND

    def test_invalid_token_is_fatal_and_marks_unavailable(self):
        adapter = FatSecretAdapter(self.config, session=_session_returning(
            {"error": {"code": 13, "message": "Invalid access token"}}))

        result = adapter.invoke(_lookup("apple"))

        assert result.status is ResultStatus.FAILED
        assert result.failure_kind is FailureKind.FATAL
        assert adapter.is_available() is False

    def test_non_credential_error_keeps_adapter_available(self):
        adapter = FatSecretAdapter(self.config, session=_session_returning(
            {"error": {"code": 12, "message": "User is performing too many actions"}}))

        result = adapter.invoke(_lookup("apple"))

        assert result.failure_kind is FailureKind.RETRYABLE
        assert adapter.is_available() is True

    def test_server_error_is_retryable(self):
        adapter = FatSecretAdapter(self.config, session=_session_returning({}, status_code=503))

        result = adapter.invoke(_lookup("apple"))

        assert result.failure_kind is FailureKind.RETRYABLE
        assert adapter.is_available() is True

    def test_timeout_is_retryable(self):
        session = Mock()
        session.get.side_effect = requests.exceptions.Timeout("read timed out")
        adapter = FatSecretAdapter(self.config, session=session)

        result = adapter.invoke(_lookup("apple"))

        assert result.status is ResultStatus.FAILED
        assert result.failure_kind is FailureKind.RETRYABLE


class TestUSDAAdapter:
    """USDAAdapter nutrient mapping and data type preference."""

    def setup_method(self):
        self.config = NutritionProviderConfig(api_key="usda-key", base_url="https://fdc.test/v1")

    @staticmethod
    def _food(description, data_type, calories, **nutrients):
        numbers = {"protein": "203", "fat": "204", "carbs": "205", "fiber": "291", "sodium": "307"}
        food_nutrients = [{"nutrientNumber": "208", "value": calories}]
        food_nutrients += [{"nutrientNumber": numbers[k], "value": v} for k, v in nutrients.items()]
        return {"description": description, "dataType": data_type, "foodNutrients": food_nutrients}

    def test_prefers_sr_legacy_and_scales(self):
        session = _session_returning({"foods": [
            self._food("BANANA CHIPS", "Branded", 519, protein=2.3, fat=33.6, carbs=58.4),
            self._food("Bananas, raw", "SR Legacy", 89, protein=1.09, fat=0.33, carbs=22.84, fiber=2.6),
        ]})
        adapter = USDAAdapter(self.config, session=session)

        result = adapter.invoke(_lookup("banana", 120))

        assert result.success
        assert result.payload.name == "Bananas, raw"
        assert result.payload.calories == pytest.approx(106.8)
        assert result.payload.fiber == pytest.approx(3.12)
        assert result.payload.sodium is None
        assert result.payload.source == "USDA FoodData Central"

        args, kwargs = session.get.call_args
        assert args[0] == "https://fdc.test/v1/foods/search"
        assert kwargs["params"]["api_key"] == "usda-key"

    def test_atwater_energy_fallback(self):
        food = {"description": "Kale, raw", "dataType": "Foundation", "foodNutrients": [
            {"nutrientNumber": "958", "value": 43},
            {"nutrientNumber": "203", "value": 2.9},
        ]}
        facts = USDAAdapter.parse_food(food)
        assert facts.calories == 43
        assert facts.fat == 0.0

    def test_empty_search_is_not_found(self):
        adapter = USDAAdapter(self.config, session=_session_returning({"foods": []}))
        assert adapter.invoke(_lookup("nonexistent_food_xyz")).status is ResultStatus.NOT_FOUND

    def test_forbidden_is_fatal(self):
        adapter = USDAAdapter(self.config, session=_session_returning({}, status_code=403))

        result = adapter.invoke(_lookup("apple"))

        assert result.failure_kind is FailureKind.FATAL
        assert adapter.is_available() is False

    def test_bad_request_is_fatal_but_keeps_adapter_available(self):
        adapter = USDAAdapter(self.config, session=_session_returning({}, status_code=400))

        result = adapter.invoke(_lookup("apple"))

        assert result.failure_kind is FailureKind.FATAL
        assert adapter.is_available() is True

    def test_rate_limited_is_retryable(self):
        adapter = USDAAdapter(self.config, session=_session_returning({}, status_code=429))
        assert adapter.invoke(_lookup("apple")).failure_kind is FailureKind.RETRYABLE


class TestLocalProductsAdapter:
    """LocalProductsAdapter lookups."""

    def setup_method(self):
        self.adapter = LocalProductsAdapter()

    def test_always_available(self):
        assert self.adapter.is_available()

    @pytest.mark.parametrize("query,expected", [
        ("Chicken Breast", "chicken breast"),
        ("grilled chicken breast", "chicken breast"),
        ("Гречка", "buckwheat"),
        ("two boiled eggs", "boiled egg"),
        ("ripe banana", "banana"),
    ])
    def test_matching(self, query, expected):
        assert self.adapter.fetch_reference(query).name == expected

    def test_scaled_result(self):
        result = self.adapter.invoke(_lookup("oatmeal", 250))

        assert result.success
        assert result.provider == "local"
        assert result.payload.calories == pytest.approx(177.5)
        assert result.payload.weight == 250

    def test_unknown_food(self):
        result = self.adapter.invoke(_lookup("nonexistent_food_xyz"))
        assert result.status is ResultStatus.NOT_FOUND

    def test_custom_table(self):
        adapter = LocalProductsAdapter(products=[("protein bar", 350, 30, 35, 10, ("bar",), {"fiber": 5})])
        facts = adapter.fetch_reference("bar")
        assert facts.name == "protein bar"
        assert facts.fiber == 5
