"""
Shared pieces of the review source adapters.
"""

from datetime import datetime, timezone
from typing import List

from fivestarss.models.review import ReviewItem


class ReviewSourceError(Exception):
    """A store API call failed; the message is surfaced in the feed as an alert."""


class ReviewSource:
    """
    Base class for store adapters.

    Subclasses set `store` to the store label and implement fetch().
    """

    store = ""

    def fetch(self, app_id: str, app_name: str) -> List[ReviewItem]:
        """
        Fetch the most recent reviews for one app.

        Args:
            app_id: Store-native app identifier
            app_name: Display name copied onto every record

        Returns:
            List of ReviewItem objects

        Raises:
            ReviewSourceError: If the store cannot be queried
        """
        raise NotImplementedError


def utc_from_timestamp(seconds) -> datetime:
    """Epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def clamp_rating(value) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, min(5, rating))
