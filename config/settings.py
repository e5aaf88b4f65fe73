"""
Configuration settings for FivestaRSS.

Centralized configuration for the poller, the feed format and the server.
Every value can be overridden through the environment.
"""

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
FEED_DIRECTORY = Path(os.getenv("FEED_DIRECTORY", str(PROJECT_ROOT / "feeds")))
MONITORED_APPS_PATH = Path(
    os.getenv("MONITORED_APPS_PATH", str(PROJECT_ROOT / "config" / "monitored_apps.json"))
)

# Feed
MAX_REVIEWS_PER_FEED = int(os.getenv("MAX_REVIEWS_PER_FEED", "100"))
FEED_BASE_URL = os.getenv("FEED_BASE_URL", "http://localhost:5000")

# Polling
POLLING_INTERVAL_MINUTES = float(os.getenv("POLLING_INTERVAL_MINUTES", "60"))
MAX_PAGES_PER_SOURCE = int(os.getenv("MAX_PAGES_PER_SOURCE", "5"))  # Pagination safety limit

# Google Play (Android Publisher API)
GOOGLE_PLAY_SERVICE_ACCOUNT_KEY_PATH = os.getenv("GOOGLE_PLAY_SERVICE_ACCOUNT_KEY_PATH", "")
GOOGLE_PLAY_PAGE_SIZE = int(os.getenv("GOOGLE_PLAY_PAGE_SIZE", "100"))

# App Store (iTunes customer reviews feed)
APP_STORE_COUNTRIES = [
    c.strip() for c in os.getenv("APP_STORE_COUNTRIES", "us").split(",") if c.strip()
]

# HTTP client
REQUEST_TIMEOUT_SECONDS = int(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))
USER_AGENT = os.getenv("USER_AGENT", "FivestaRSS/1.0")

# Feed server
SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("SERVER_PORT", "5000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
