#store_engine\run_update_checker.py
"""Run the periodic update checker."""

import logging
import sys

from store_engine.config import settings
from store_engine.container import get_container
from store_engine.updates.checker import UpdateChecker

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    container = get_container()
    checker = UpdateChecker(
        container.service,
        interval_seconds=settings.update_check_interval_seconds,
    )

    try:
        checker.start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        container.digest_resolver.close()


if __name__ == "__main__":
    main()
