"""
App Registry - the configured set of monitored apps.

Loads monitored apps from JSON, validates them and answers the
feed-file allow-list question for the HTTP endpoint.
"""

import json
import os
import logging
from typing import Dict, List, Optional

from fivestarss.models.monitored_app import MonitoredApp

logger = logging.getLogger(__name__)


class AppRegistry:
    """
    Monitored apps keyed by feed file name.

    Accepts either {"monitored_apps": [...]} or a bare list of app
    objects. Invalid entries are rejected at load time, never corrected.
    """

    def __init__(self, apps: Optional[List[MonitoredApp]] = None):
        """
        Initialize registry.

        Args:
            apps: Monitored apps, in polling order

        Raises:
            ValueError: If a feed file name is not a bare filename or is
                used by two apps
        """
        self.apps: Dict[str, MonitoredApp] = {}  # feed_file_name -> MonitoredApp
        for app in apps or []:
            self.add_app(app)

    @classmethod
    def load(cls, path: str) -> "AppRegistry":
        """
        Load registry from a JSON file.

        A missing file yields an empty registry; malformed content raises.
        """
        if not os.path.exists(path):
            logger.warning(f"No monitored apps file found at {path}, no apps will be polled")
            return cls()

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, list):
            apps_list = data
        elif isinstance(data, dict):
            apps_list = data.get("monitored_apps", [])
        else:
            raise ValueError(f"Unexpected monitored apps format in {path}")

        apps = []
        for index, app_data in enumerate(apps_list):
            if not isinstance(app_data, dict):
                raise ValueError(f"Monitored app #{index} in {path} is not an object")
            try:
                apps.append(MonitoredApp.from_dict(app_data))
            except KeyError as e:
                raise ValueError(f"Monitored app #{index} in {path} is missing {e}") from e

        registry = cls(apps)
        logger.info(f"Loaded {len(registry.apps)} monitored apps from {path}")
        return registry

    def add_app(self, app: MonitoredApp) -> None:
        """
        Register an app.

        Raises:
            ValueError: On unsafe or duplicate feed file names
        """
        name = app.feed_file_name
        if (
            name in (".", "..")
            or "/" in name
            or "\\" in name
            or "\x00" in name
            or os.path.basename(name) != name
        ):
            raise ValueError(f"Invalid feed_file_name for '{app.name}': {name!r}")

        if name in self.apps:
            raise ValueError(
                f"Feed file '{name}' is used by both '{self.apps[name].name}' and '{app.name}'"
            )

        if not app.enabled_sources():
            logger.warning(f"Monitored app '{app.name}' has no store ids configured")

        self.apps[name] = app

    def get_all_apps(self) -> List[MonitoredApp]:
        """Return all apps in registration order."""
        return list(self.apps.values())

    def find_by_feed_file(self, feed_file_name: str) -> Optional[MonitoredApp]:
        """Return the app owning a feed file, or None if it is not configured."""
        return self.apps.get(feed_file_name)
