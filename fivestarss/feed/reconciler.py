"""
Reconciler.

Runs one polling cycle for one app: decode the stored feed, merge newly
fetched reviews, surface source failures as service alerts and decide
whether the feed needs rewriting.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from fivestarss.feed.codec import FeedCodec
from fivestarss.models.monitored_app import MonitoredApp
from fivestarss.models.review import ReviewItem, build_service_alert
from fivestarss.sources.base import ReviewSource
from fivestarss.utils.storage import FeedStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one app's cycle."""
    records: List[ReviewItem] = field(default_factory=list)  # As last written (or as read)
    new_count: int = 0
    alerts: List[ReviewItem] = field(default_factory=list)
    written: bool = False
    failed: bool = False


def select_new_reviews(seen_ids: Set[str], fetched: Iterable[ReviewItem]) -> List[ReviewItem]:
    """
    Keep fetched records whose id has not been seen yet.

    seen_ids is updated in place so a review is only taken once, even if
    it is returned twice in the same batch.
    """
    new_reviews = []
    for review in fetched:
        if review.id in seen_ids:
            continue
        seen_ids.add(review.id)
        new_reviews.append(review)
    return new_reviews


def sort_newest_first(records: Iterable[ReviewItem]) -> List[ReviewItem]:
    """
    Stable sort by date, newest first.

    Ties keep insertion order, so stored records stay ahead of newly
    fetched ones with the same date (existing list, then appended fetches).
    """
    return sorted(records, key=lambda r: r.date, reverse=True)


class Reconciler:
    """
    Merges fetched reviews into an app's feed.

    Failures are isolated per (app, store): a failing store becomes an
    alert item at the top of the feed and the other store still runs.
    process_app() never raises.
    """

    def __init__(
        self,
        feed_store: FeedStore,
        codec: FeedCodec,
        sources: Dict[str, ReviewSource]
    ):
        """
        Initialize reconciler.

        Args:
            feed_store: Storage for the feed documents
            codec: Feed codec (owns the retention cap)
            sources: Store label -> source adapter
        """
        self.feed_store = feed_store
        self.codec = codec
        self.sources = sources

    def read_reviews(self, app: MonitoredApp) -> List[ReviewItem]:
        """Decode the app's stored feed; no document means no prior state."""
        try:
            document = self.feed_store.read(app.feed_file_name)
        except UnicodeDecodeError as e:
            logger.error(f"Feed {app.feed_file_name} is not valid UTF-8, starting empty: {e}")
            return []
        return self.codec.decode(document)

    def write_reviews(self, app: MonitoredApp, records: List[ReviewItem]) -> None:
        """Encode records (already ordered) and replace the app's feed."""
        document = self.codec.encode(app.name, records)
        self.feed_store.write(app.feed_file_name, document)
        logger.info(
            f"Written {min(len(records), self.codec.max_items)} reviews to feed "
            f"{app.feed_file_name}"
        )

    def add_service_alert(self, app: MonitoredApp, message: str) -> ReviewItem:
        """
        Put an alert at the top of the app's stored feed right away.

        Re-reads the document so the alert lands on the current state.
        """
        with self.feed_store.lock(app.feed_file_name):
            existing = self.read_reviews(app)
            alert = build_service_alert(message)
            existing.insert(0, alert)
            self.write_reviews(app, existing)
        return alert

    def process_app(self, app: MonitoredApp) -> ReconcileResult:
        """
        Run one cycle for an app.

        Args:
            app: The monitored app

        Returns:
            ReconcileResult describing what was written
        """
        logger.info(f"Processing app: {app.name}")

        try:
            with self.feed_store.lock(app.feed_file_name):
                return self._reconcile(app)

        except Exception as e:
            logger.error(f"Failed to process app {app.name}: {e}", exc_info=True)

            result = ReconcileResult(failed=True)
            try:
                result.alerts.append(
                    self.add_service_alert(app, f"General Processing Error: {e}")
                )
            except Exception as alert_error:
                logger.error(
                    f"Failed to add service alert for {app.name}: {alert_error}",
                    exc_info=True
                )
            return result

    def _reconcile(self, app: MonitoredApp) -> ReconcileResult:
        existing = self.read_reviews(app)
        had_prior_state = bool(existing)

        merged = list(existing)
        seen_ids = {r.id for r in existing}
        alerts: List[ReviewItem] = []
        new_count = 0

        for store, native_id in app.enabled_sources():
            source = self.sources.get(store)
            if source is None:
                logger.warning(f"No {store} source configured, skipping for {app.name}")
                continue

            try:
                logger.info(f"Fetching {store} reviews for {app.name}")
                fetched = source.fetch(native_id, app.name)
            except Exception as e:
                logger.error(f"Failed to fetch {store} reviews for {app.name}: {e}", exc_info=True)

                alert = build_service_alert(f"{store} API Error: {e}")
                alerts.insert(0, alert)
                existing.insert(0, alert)
                # Persist the alert now, whatever the rest of the cycle does
                self.write_reviews(app, existing)
                continue

            new_reviews = select_new_reviews(seen_ids, fetched)
            if new_reviews:
                merged.extend(new_reviews)
                new_count += len(new_reviews)
                logger.info(f"Added {len(new_reviews)} new {store} reviews for {app.name}")

        if not new_count and had_prior_state:
            logger.info(f"No new reviews found for {app.name}")
            return ReconcileResult(records=existing, alerts=alerts)

        records = alerts + sort_newest_first(merged)
        self.write_reviews(app, records)
        logger.info(f"Updated RSS feed for {app.name} with {len(records)} total reviews")

        return ReconcileResult(
            records=records[:self.codec.max_items],
            new_count=new_count,
            alerts=alerts,
            written=True
        )
