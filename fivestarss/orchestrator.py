"""
Polling Orchestrator.

Runs review polling cycles over every monitored app, on an interval,
until asked to stop.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from fivestarss.feed.codec import FeedCodec
from fivestarss.feed.reconciler import ReconcileResult, Reconciler
from fivestarss.models.review import STORE_APP_STORE, STORE_GOOGLE_PLAY
from fivestarss.registry.app_registry import AppRegistry
from fivestarss.sources.app_store import AppStoreReviewSource
from fivestarss.sources.google_play import GooglePlayReviewSource
from fivestarss.utils.storage import FeedStore
import config.settings as settings

logger = logging.getLogger(__name__)


class PollingOrchestrator:
    """
    Orchestrates the polling loop.

    Each cycle processes apps one after another; a failure in one app
    never stops the others. Only one cycle runs at a time: a cycle
    requested while another is in flight is skipped.
    """

    def __init__(
        self,
        registry: AppRegistry,
        reconciler: Reconciler,
        polling_interval_seconds: float
    ):
        """
        Initialize polling orchestrator.

        Args:
            registry: Monitored apps
            reconciler: Per-app cycle runner
            polling_interval_seconds: Delay between cycles
        """
        self.registry = registry
        self.reconciler = reconciler
        self.polling_interval_seconds = polling_interval_seconds

        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()

    @classmethod
    def from_settings(cls, registry: Optional[AppRegistry] = None) -> "PollingOrchestrator":
        """Wire the orchestrator from config/settings.py."""
        logger.info("Initializing polling components...")

        if registry is None:
            registry = AppRegistry.load(str(settings.MONITORED_APPS_PATH))

        feed_store = FeedStore(str(settings.FEED_DIRECTORY))
        codec = FeedCodec(
            max_items=settings.MAX_REVIEWS_PER_FEED,
            link=settings.FEED_BASE_URL
        )
        sources = {
            STORE_GOOGLE_PLAY: GooglePlayReviewSource(
                service_account_key_path=settings.GOOGLE_PLAY_SERVICE_ACCOUNT_KEY_PATH,
                max_pages=settings.MAX_PAGES_PER_SOURCE,
                page_size=settings.GOOGLE_PLAY_PAGE_SIZE
            ),
            STORE_APP_STORE: AppStoreReviewSource(
                countries=settings.APP_STORE_COUNTRIES,
                max_pages=settings.MAX_PAGES_PER_SOURCE,
                timeout=settings.REQUEST_TIMEOUT_SECONDS,
                user_agent=settings.USER_AGENT
            ),
        }

        return cls(
            registry=registry,
            reconciler=Reconciler(feed_store, codec, sources),
            polling_interval_seconds=settings.POLLING_INTERVAL_MINUTES * 60
        )

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def stop(self) -> None:
        """Ask the loop to finish after the current app."""
        self._stop_event.set()

    def run_cycle(self) -> Optional[Dict[str, ReconcileResult]]:
        """
        Process every monitored app once.

        Returns:
            feed_file_name -> ReconcileResult, or None if the cycle was
            skipped because another one is still running
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous polling cycle still running, skipping this one")
            return None

        try:
            apps = self.registry.get_all_apps()
            if not apps:
                logger.warning("No monitored apps configured")
                return {}

            logger.info(f"Starting review polling cycle at {datetime.now(timezone.utc).isoformat()}")

            results = {}
            for app in apps:
                if self._stop_event.is_set():
                    logger.info("Stop requested, ending cycle early")
                    break
                results[app.feed_file_name] = self.reconciler.process_app(app)

            written = sum(1 for r in results.values() if r.written)
            new_reviews = sum(r.new_count for r in results.values())
            logger.info(
                f"Completed review polling cycle: {len(results)} apps, "
                f"{written} feeds written, {new_reviews} new reviews"
            )
            return results

        finally:
            self._cycle_lock.release()

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Poll until stopped.

        Args:
            stop_event: Optional external event; setting it stops the loop
                between cycles or during the delay
        """
        if stop_event is not None:
            self._stop_event = stop_event

        logger.info(
            f"FivestaRSS polling started (interval: {self.polling_interval_seconds:.0f}s)"
        )

        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                logger.error(f"Error during review polling cycle: {e}", exc_info=True)

            if self._stop_event.wait(self.polling_interval_seconds):
                logger.info("Polling cancellation requested")
                break

        logger.info("FivestaRSS polling stopped")
