#store_engine\run_api.py
"""Run the store HTTP API."""

import logging
import os

import uvicorn

from store_engine.config import settings

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    host = os.getenv("STORE_API_HOST", "0.0.0.0")
    port = int(os.getenv("STORE_API_PORT", "8000"))

    logger.info("=" * 80)
    logger.info("🚀 STORE ENGINE API")
    logger.info("=" * 80)
    logger.info(f"Listening on {host}:{port}")
    logger.info(f"Stacks root: {settings.stacks_root}")
    logger.info(f"Max concurrent operations: {settings.max_concurrent_operations}")
    logger.info("=" * 80)

    try:
        uvicorn.run("store_engine.api.main:app", host=host, port=port, log_level=settings.log_level.lower())
    finally:
        from store_engine.container import get_container

        logger.info("🛑 Shutting down operation runner...")
        get_container().runner.shutdown(wait=True, timeout=30)


if __name__ == "__main__":
    main()
