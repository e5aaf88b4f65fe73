"""
Google Play review source.

Fetches reviews through the Google Play Developer API (Android Publisher v3)
using a service account.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from fivestarss.models.review import (
    ANONYMOUS_AUTHOR,
    GOOGLE_PLAY_TAG,
    STORE_GOOGLE_PLAY,
    ReviewItem,
    compose_device,
    derive_title,
    make_review_id,
)
from fivestarss.sources.base import (
    ReviewSource,
    ReviewSourceError,
    clamp_rating,
    utc_from_timestamp,
)

logger = logging.getLogger(__name__)

ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"


class GooglePlayReviewSource(ReviewSource):
    """
    Fetches Google Play reviews for an app package.

    Note: the Developer API only returns reviews created or modified in
    the last 7 days, so a feed only fills up as the service keeps polling.
    """

    store = STORE_GOOGLE_PLAY

    def __init__(
        self,
        service_account_key_path: Optional[str],
        max_pages: int = 5,
        page_size: int = 100
    ):
        """
        Initialize Google Play source.

        Args:
            service_account_key_path: JSON key of a service account with
                access to the Play Console
            max_pages: Safety limit on token-paginated requests per fetch
            page_size: maxResults per request
        """
        self.service_account_key_path = service_account_key_path
        self.max_pages = max_pages
        self.page_size = page_size
        self._service = None

    def fetch(self, app_id: str, app_name: str) -> List[ReviewItem]:
        """
        Fetch recent reviews for a package, newest first.

        Args:
            app_id: Package name (e.g., "com.example.app")
            app_name: Display name copied onto every record

        Returns:
            List of ReviewItem objects

        Raises:
            ReviewSourceError: If credentials are missing or the API fails
        """
        service = self._get_service()

        reviews = []
        next_token = None

        for page in range(1, self.max_pages + 1):
            params = {"packageName": app_id, "maxResults": self.page_size}
            if next_token:
                params["token"] = next_token

            logger.info(f"Fetching Google Play reviews page {page} for {app_id}")

            try:
                response = service.reviews().list(**params).execute()
            except HttpError as e:
                raise ReviewSourceError(f"Google Play API request failed: {e}") from e

            page_reviews = response.get("reviews") or []
            for raw_review in page_reviews:
                reviews.append(self._convert_review(raw_review, app_name))

            next_token = (response.get("tokenPagination") or {}).get("nextPageToken")
            logger.info(
                f"Retrieved {len(page_reviews)} reviews from page {page}, "
                f"next token: {'Yes' if next_token else 'No'}"
            )

            if not next_token:
                break
        else:
            logger.warning(
                f"Reached maximum page limit ({self.max_pages}) for Google Play reviews of {app_id}"
            )

        logger.info(f"Total Google Play reviews retrieved for {app_id}: {len(reviews)}")
        if len(reviews) < 10:
            logger.warning(
                f"Google Play API only returns reviews from the last 7 days. "
                f"Retrieved {len(reviews)} reviews for {app_id}"
            )

        reviews.sort(key=lambda r: r.date, reverse=True)
        return reviews

    def _get_service(self):
        """Build (once) the Android Publisher client."""
        if self._service is not None:
            return self._service

        key_path = self.service_account_key_path
        if not key_path:
            raise ReviewSourceError("Google Play service account key path not configured")

        if not os.path.exists(key_path):
            raise ReviewSourceError(
                f"Google Play service account key file not found at {key_path}"
            )

        try:
            credentials = service_account.Credentials.from_service_account_file(
                key_path,
                scopes=[ANDROID_PUBLISHER_SCOPE]
            )
        except (ValueError, OSError) as e:
            raise ReviewSourceError(f"Invalid Google Play service account key: {e}") from e

        self._service = build(
            "androidpublisher",
            "v3",
            credentials=credentials,
            cache_discovery=False
        )
        logger.info("Google Play service initialized successfully")
        return self._service

    @staticmethod
    def _convert_review(raw_review: dict, app_name: str) -> ReviewItem:
        """Map one Android Publisher review resource to a ReviewItem."""
        comments = raw_review.get("comments") or []
        user_comment = next(
            (c["userComment"] for c in comments if c.get("userComment")),
            {}
        )

        text = (user_comment.get("text") or "").strip()

        seconds = (user_comment.get("lastModified") or {}).get("seconds")
        if seconds is not None:
            review_date = utc_from_timestamp(seconds)
        else:
            logger.warning(
                f"Google Play review {raw_review.get('reviewId')} has no lastModified, "
                f"using current time"
            )
            review_date = datetime.now(timezone.utc).replace(microsecond=0)

        return ReviewItem(
            # lastModified in the id turns an edited review into a new record
            id=make_review_id(GOOGLE_PLAY_TAG, raw_review.get("reviewId", ""), review_date),
            title=derive_title(text),
            body=text,
            rating=clamp_rating(user_comment.get("starRating")),
            author=raw_review.get("authorName") or ANONYMOUS_AUTHOR,
            date=review_date,
            app_name=app_name,
            source=STORE_GOOGLE_PLAY,
            version=user_comment.get("appVersionName") or None,
            device=compose_device(
                user_comment.get("device"),
                user_comment.get("androidOsVersion")
            )
        )
