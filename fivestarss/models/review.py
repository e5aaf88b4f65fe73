"""
Review data model.

Represents a single store review (or a synthetic service alert) normalized
across Google Play and the App Store.
"""

import html
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

# Store labels (also rendered in the feed's "Store" paragraph)
STORE_APP_STORE = "App Store"
STORE_GOOGLE_PLAY = "Google Play"
STORE_SYSTEM = "System"
STORE_UNKNOWN = "Unknown"

VALID_STORES = (STORE_APP_STORE, STORE_GOOGLE_PLAY, STORE_SYSTEM, STORE_UNKNOWN)

# Id prefixes; decode infers the store from these
GOOGLE_PLAY_TAG = "google-play"
APP_STORE_TAG = "app-store"
SERVICE_ALERT_PREFIX = "SERVICE_ALERT_"

ANONYMOUS_AUTHOR = "Anonymous"
MISSING_AUTHOR = "missing name"

SERVICE_ALERT_AUTHOR = "FivestaRSS Service"
SERVICE_ALERT_TITLE = "🚨 SERVICE ALERT"

TITLE_MAX_WORDS = 10
TITLE_MAX_CHARS = 100
ELLIPSIS = "..."

MIN_RATING = 0
MAX_RATING = 5


@dataclass
class ReviewItem:
    """
    A review normalized across sources.

    The id doubles as the dedup key and embeds the review's timestamp,
    so an edited review surfaces as a new record.
    """
    id: str  # "{source-tag}-{native-id}-{YYYYMMDDHHmmss}"
    title: str
    body: str  # The reviewer's words
    rating: int  # 0-5, 0 reserved for service alerts
    author: str
    date: datetime  # Aware, UTC
    app_name: str
    source: str  # One of VALID_STORES
    version: Optional[str] = None  # Google Play only
    territory: Optional[str] = None  # App Store only
    device: Optional[str] = None  # Google Play only

    def __post_init__(self):
        if not (MIN_RATING <= self.rating <= MAX_RATING):
            raise ValueError(
                f"Invalid rating: {self.rating}. Must be {MIN_RATING}-{MAX_RATING}"
            )

        if self.source not in VALID_STORES:
            raise ValueError(
                f"Invalid source: {self.source}. Must be one of {', '.join(VALID_STORES)}"
            )

    @property
    def is_service_alert(self) -> bool:
        return self.source == STORE_SYSTEM


def derive_title(body: str) -> str:
    """
    Build a display title from review text when the store provides none.

    Takes the first ten words, marks truncation with an ellipsis and
    hard-caps the result at 100 characters.
    """
    words = (body or "").split()
    if not words:
        return "Review"

    title = " ".join(words[:TITLE_MAX_WORDS])
    if len(words) > TITLE_MAX_WORDS:
        title += ELLIPSIS

    if len(title) > TITLE_MAX_CHARS:
        title = title[:TITLE_MAX_CHARS - len(ELLIPSIS)] + ELLIPSIS

    return title


def make_review_id(source_tag: str, native_id: str, date: datetime) -> str:
    """Compose the feed-stable review id: '{tag}-{native id}-{YYYYMMDDHHmmss}'."""
    return f"{source_tag}-{native_id}-{date.strftime('%Y%m%d%H%M%S')}"


def compose_device(model: Optional[str], os_version: Optional[int]) -> Optional[str]:
    """
    Combine device model and Android OS version.

    "Pixel 7 (Android 14)" when both are known, otherwise whichever
    one is present, otherwise None.
    """
    has_os = os_version is not None and str(os_version) != ""

    if model and has_os:
        return f"{model} (Android {os_version})"
    if model:
        return model
    if has_os:
        return f"Android {os_version}"
    return None


def build_service_alert(message: str, now: Optional[datetime] = None) -> ReviewItem:
    """
    Synthesize a System record that surfaces an operational error inside
    the feed itself.

    Args:
        message: Raw error summary (HTML-escaped into the body)
        now: Override for the current time (UTC)

    Returns:
        ReviewItem with source=System and rating 0
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    return ReviewItem(
        id=f"{SERVICE_ALERT_PREFIX}{now.strftime('%Y%m%d_%H%M%S_%f')}",
        title=SERVICE_ALERT_TITLE,
        body=(
            f"Service error at {now.strftime('%Y-%m-%d %H:%M:%S')} UTC: "
            f"{html.escape(message)}"
        ),
        rating=0,
        author=SERVICE_ALERT_AUTHOR,
        # The feed stores whole seconds only
        date=now.replace(microsecond=0),
        app_name=STORE_SYSTEM,
        source=STORE_SYSTEM,
    )
