import sys

from fitcoach_router import FitnessAIService, build_router
from fitcoach_router.utils import ConfigManager, setup_logging


def main():
    food = sys.argv[1] if len(sys.argv) > 1 else "chicken breast"
    weight = float(sys.argv[2]) if len(sys.argv) > 2 else 100.0

    config = ConfigManager().load_config()
    setup_logging(config.logging_config)

    router = build_router(config)
    try:
        envelope = FitnessAIService(router).lookup_nutrition(food, weight)
    finally:
        router.shutdown()

    if envelope.success:
        print(envelope.nutrition.summary)
    else:
        print(envelope.error_message)

if __name__ == "__main__":
    main()
