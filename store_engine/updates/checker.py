#store_engine\updates\checker.py
"""
Update Checker - background loop that refreshes the update status of every
installed app.
"""

import logging
import signal
import threading

logger = logging.getLogger(__name__)


class UpdateChecker:
    """
    Periodically runs StoreService.check_all_apps_for_updates().

    State lives in the stack table; the loop itself keeps nothing between
    cycles.
    """

    def __init__(self, service, interval_seconds: int = 3600):
        self.service = service
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()

    def start(self, install_signal_handlers: bool = True):
        """Run until stop() or a shutdown signal."""
        logger.info("=" * 80)
        logger.info("🔄 UPDATE CHECKER STARTED")
        logger.info("=" * 80)
        logger.info(f"Check interval: {self.interval_seconds}s")

        if install_signal_handlers:
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(self.interval_seconds)

        logger.info("Update Checker stopped")

    def run_once(self):
        try:
            results = self.service.check_all_apps_for_updates()
        except Exception as e:
            logger.error(f"Error in update cycle: {e}", exc_info=True)
            return []

        outdated = sum(1 for r in results if r.update_available)
        logger.info(f"Checked {len(results)} app(s), {outdated} with updates available")
        return results

    def stop(self):
        self._stop_event.set()

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        self.stop()
