"""
App Store review source.

Reads the public iTunes customer-reviews feed (JSON flavour), one
storefront at a time.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import requests

from fivestarss.models.review import (
    ANONYMOUS_AUTHOR,
    APP_STORE_TAG,
    STORE_APP_STORE,
    ReviewItem,
    derive_title,
    make_review_id,
)
from fivestarss.sources.base import ReviewSource, ReviewSourceError, clamp_rating

logger = logging.getLogger(__name__)

REVIEWS_URL = (
    "https://itunes.apple.com/{country}/rss/customerreviews/"
    "page={page}/id={app_id}/sortby=mostrecent/json"
)


def _label(entry: dict, key: str) -> str:
    value = entry.get(key)
    if isinstance(value, dict):
        return value.get("label") or ""
    return str(value) if value is not None else ""


def _parse_updated(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class AppStoreReviewSource(ReviewSource):
    """
    Fetches App Store reviews for a numeric app id across storefronts.
    """

    store = STORE_APP_STORE

    def __init__(
        self,
        countries: Iterable[str] = ("us",),
        max_pages: int = 5,
        timeout: int = 15,
        user_agent: str = "FivestaRSS/1.0",
        session: Optional[requests.Session] = None
    ):
        """
        Initialize App Store source.

        Args:
            countries: Two-letter storefront codes to poll
            max_pages: Safety limit on pages per storefront
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header value
            session: Optional requests session (shared connection pool)
        """
        self.countries = [c.strip().lower() for c in countries if c and c.strip()]
        self.max_pages = max_pages
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def fetch(self, app_id: str, app_name: str) -> List[ReviewItem]:
        """
        Fetch recent reviews from every configured storefront, newest first.

        Raises:
            ReviewSourceError: On transport errors, non-200 responses or
                unparsable payloads
        """
        reviews = []
        seen_ids = set()

        for country in self.countries:
            for page in range(1, self.max_pages + 1):
                entries = self._fetch_page(app_id, country, page)
                page_reviews = [
                    self._convert_entry(entry, app_name, country)
                    for entry in entries
                    # The first entry of page 1 can be app metadata
                    if "im:rating" in entry
                ]

                if not page_reviews:
                    break

                for review in page_reviews:
                    if review.id not in seen_ids:
                        seen_ids.add(review.id)
                        reviews.append(review)
            else:
                logger.warning(
                    f"Reached maximum page limit ({self.max_pages}) for App Store "
                    f"reviews of {app_id} in {country.upper()}"
                )

        logger.info(f"Retrieved {len(reviews)} App Store reviews for app {app_id}")

        reviews.sort(key=lambda r: r.date, reverse=True)
        return reviews

    def _fetch_page(self, app_id: str, country: str, page: int) -> List[dict]:
        url = REVIEWS_URL.format(country=country, page=page, app_id=app_id)
        logger.debug(f"Fetching App Store reviews page {page} ({country}) for {app_id}")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ReviewSourceError(f"App Store request failed: {e}") from e

        if response.status_code != 200:
            raise ReviewSourceError(
                f"App Store request failed: HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            preview = response.text[:500]
            logger.error(f"Failed to parse App Store response. First 500 chars: {preview}")
            raise ReviewSourceError(f"App Store response parsing failed: {e}") from e

        if not isinstance(data, dict):
            raise ReviewSourceError("App Store response parsing failed: unexpected payload")

        entries = (data.get("feed") or {}).get("entry") or []
        # A single-entry feed is an object, not a list
        if isinstance(entries, dict):
            entries = [entries]
        return entries

    @staticmethod
    def _convert_entry(entry: dict, app_name: str, country: str) -> ReviewItem:
        """Map one feed entry to a ReviewItem."""
        body = _label(entry, "content")
        title = _label(entry, "title")
        author = ((entry.get("author") or {}).get("name") or {}).get("label")

        review_date = _parse_updated(_label(entry, "updated"))
        if review_date is None:
            review_date = datetime.now(timezone.utc).replace(microsecond=0)

        return ReviewItem(
            id=make_review_id(APP_STORE_TAG, _label(entry, "id"), review_date),
            title=title or derive_title(body),
            body=body,
            rating=clamp_rating(_label(entry, "im:rating")),
            author=author or ANONYMOUS_AUTHOR,
            date=review_date,
            app_name=app_name,
            source=STORE_APP_STORE,
            territory=country.upper()
        )
