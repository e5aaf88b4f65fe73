"""
Storage utility.

Path-safe, whole-document access to the per-app feed files.
"""

import os
import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class FeedPathError(ValueError):
    """Raised when a feed name is not a bare filename inside the feed directory."""


class FeedStore:
    """
    Manages file I/O for the feed documents.

    Each app owns exactly one document, addressed by a bare filename
    (e.g. "my-app.xml") inside feed_directory. Writes replace the whole
    document atomically; there are no partial in-place edits.
    """

    def __init__(self, feed_directory: str):
        """
        Initialize feed store.

        Args:
            feed_directory: Directory holding the feed documents
        """
        self.feed_directory = os.path.abspath(feed_directory)
        os.makedirs(self.feed_directory, exist_ok=True)

        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

        logger.info(f"Initialized FeedStore with feed_directory={self.feed_directory}")

    def resolve(self, feed_name: str) -> str:
        """
        Map a feed name to its absolute path.

        Args:
            feed_name: Bare filename of the feed document

        Returns:
            Absolute path inside feed_directory

        Raises:
            FeedPathError: If the name is not a bare filename or resolves
                outside the feed directory
        """
        if not feed_name or feed_name in (".", ".."):
            raise FeedPathError(f"Invalid feed filename: {feed_name!r}")

        if "\x00" in feed_name or os.path.basename(feed_name) != feed_name:
            raise FeedPathError(f"Invalid feed filename: {feed_name!r}")

        # Windows-style separators are rejected everywhere, not just on Windows
        if "/" in feed_name or "\\" in feed_name:
            raise FeedPathError(f"Invalid feed filename: {feed_name!r}")

        resolved = os.path.realpath(os.path.join(self.feed_directory, feed_name))
        directory = os.path.realpath(self.feed_directory)

        if os.path.dirname(resolved) != directory:
            raise FeedPathError(f"Feed path outside allowed directory: {feed_name!r}")

        return resolved

    def exists(self, feed_name: str) -> bool:
        return os.path.exists(self.resolve(feed_name))

    def read(self, feed_name: str) -> Optional[str]:
        """
        Read a whole feed document.

        Returns:
            Document text, or None if the feed has not been written yet
        """
        filepath = self.resolve(feed_name)

        if not os.path.exists(filepath):
            logger.info(f"Feed file {filepath} does not exist, starting with empty state")
            return None

        with open(filepath, "r", encoding="utf-8") as f:
            content = f.read()

        logger.debug(f"Read {len(content)} characters from {filepath}")
        return content

    def write(self, feed_name: str, content: str) -> None:
        """
        Replace a feed document in full.

        Writes to a temp file in the same directory, then renames it over
        the target so readers never observe a half-written document.
        """
        filepath = self.resolve(feed_name)
        os.makedirs(self.feed_directory, exist_ok=True)

        temp_path = f"{filepath}.tmp"
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(content)

            os.replace(temp_path, filepath)
            logger.debug(f"Wrote {len(content)} characters to {filepath}")

        except Exception as e:
            logger.error(f"Failed to write feed {filepath}: {e}")
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def lock(self, feed_name: str) -> threading.RLock:
        """
        Per-document lock guarding a read-modify-write sequence.

        Re-entrant, so a holder may write alerts mid-cycle.
        """
        filepath = self.resolve(feed_name)

        with self._locks_guard:
            if filepath not in self._locks:
                self._locks[filepath] = threading.RLock()
            return self._locks[filepath]
