"""
Demo script showing basic usage of the FitCoach router.

Without API keys the AI chains report themselves unavailable and the nutrition chain
falls through to the local products database, so the demo runs offline.
"""

from .models import RequestCategory
from .utils import setup_logging, get_logger, ConfigManager
from .core import FitnessAIService, build_router


def main():
    """Demonstrate basic system functionality."""
    config_manager = ConfigManager()
    config = config_manager.load_config()

    setup_logging(config.logging_config)
    logger = get_logger(__name__)

    logger.info("FitCoach Router Demo Starting")

    router = build_router(config)
    service = FitnessAIService(router)

    try:
        lookups = [("chicken breast", 150), ("Гречка", 200), ("banana", 120), ("nonexistent_food_xyz", 100)]
        for food, weight in lookups:
            envelope = service.lookup_nutrition(food, weight, user_id="demo_user")
            print(f"\nLookup: {food} ({weight} g)")
            if envelope.success:
                print(f"Result: {envelope.nutrition.summary}")
            else:
                print(f"Error: {envelope.error_message} [{envelope.error_code.value}]")
            print(f"Source: {envelope.source}, cached: {envelope.from_cache}, {envelope.processing_time_ms}ms")
            print("-" * 50)

        # Second lookup of the same portion is served from the cache.
        envelope = service.lookup_nutrition("chicken breast", 150, user_id="demo_user")
        print(f"\nRepeat lookup served from cache: {envelope.from_cache}")

        questions = [
            (RequestCategory.FOOD_ANALYSIS, "I had 2 boiled eggs and a slice of whole wheat bread"),
            (RequestCategory.WORKOUT_PLANNING, "Three full-body sessions a week with dumbbells only"),
        ]
        for category, text in questions:
            future = service.submit_request(category, text, user_id="demo_user")
            envelope = future.result()
            print(f"\n{category.value}: {text}")
            print(f"Response: {envelope.content if envelope.success else envelope.error_message}")
            print(f"Provider: {envelope.provider}, model: {envelope.model}")
            print("-" * 50)

        status = service.status()
        print(f"\nHealthy: {status['healthy']}")
        for category, info in status["categories"].items():
            print(f"  {category}: available={info['available']}")
    finally:
        router.shutdown()

    logger.info("Demo completed successfully")


if __name__ == "__main__":
    main()
