"""
Monitored app data model.

One configured app, its feed file and the store identifiers to poll.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from fivestarss.models.review import STORE_APP_STORE, STORE_GOOGLE_PLAY


@dataclass
class MonitoredApp:
    """
    An app whose reviews are republished as one RSS feed.
    """
    name: str  # Display name, also the feed's channel label
    feed_file_name: str  # Bare filename inside the feed directory
    google_play_id: Optional[str] = None  # Package name, e.g. "com.example.app"
    app_store_id: Optional[str] = None  # Numeric App Store id

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Monitored app name must not be empty")

        if not self.feed_file_name or not self.feed_file_name.strip():
            raise ValueError(f"Monitored app '{self.name}' has no feed_file_name")

    def enabled_sources(self) -> List[Tuple[str, str]]:
        """
        Return (store, native id) pairs for every store configured for this
        app, Google Play first.
        """
        sources = []
        if self.google_play_id:
            sources.append((STORE_GOOGLE_PLAY, self.google_play_id))
        if self.app_store_id:
            sources.append((STORE_APP_STORE, self.app_store_id))
        return sources

    @classmethod
    def from_dict(cls, data: dict) -> "MonitoredApp":
        """Create MonitoredApp from a JSON dict."""
        return cls(
            name=data["name"],
            feed_file_name=data["feed_file_name"],
            google_play_id=data.get("google_play_id") or None,
            app_store_id=data.get("app_store_id") or None
        )

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "name": self.name,
            "feed_file_name": self.feed_file_name,
            "google_play_id": self.google_play_id,
            "app_store_id": self.app_store_id
        }
