"""
Feed server.

Serves the generated feed documents over HTTP. Only feed files that
belong to a configured app are served.
"""

import html
import logging
import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from fivestarss.orchestrator import PollingOrchestrator
from fivestarss.registry.app_registry import AppRegistry
from fivestarss.utils.storage import FeedStore

logger = logging.getLogger(__name__)

RSS_MEDIA_TYPE = "application/rss+xml; charset=utf-8"


def create_app(
    registry: AppRegistry,
    feed_store: FeedStore,
    poller: Optional[PollingOrchestrator] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        registry: Monitored apps (the feed-file allow-list)
        feed_store: Where the feed documents live
        poller: If given, polled in a background thread for the app's lifetime
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        worker = None
        if poller is not None:
            worker = threading.Thread(target=poller.run, name="fivestarss-poller", daemon=True)
            worker.start()
            logger.info("Background poller started")

        yield

        if worker is not None:
            poller.stop()
            worker.join(timeout=30)
            logger.info("Background poller stopped")

    app = FastAPI(title="FivestaRSS", lifespan=lifespan)

    @app.get("/feeds/{file_name}")
    def get_feed(file_name: str) -> Response:
        if registry.find_by_feed_file(file_name) is None:
            return PlainTextResponse("Feed not found or not configured", status_code=404)

        content = feed_store.read(file_name)
        if content is None:
            return PlainTextResponse("Feed file does not exist", status_code=404)

        return Response(content=content, media_type=RSS_MEDIA_TYPE)

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        apps = registry.get_all_apps()

        if not apps:
            body = "<p>No monitored apps configured.</p>"
        else:
            items = "".join(
                f"<li><a href='/feeds/{html.escape(a.feed_file_name, quote=True)}'>"
                f"{html.escape(a.name)}</a></li>"
                for a in apps
            )
            body = f"<h2>Available Feeds:</h2>\n<ul>{items}</ul>"

        return (
            "<!DOCTYPE html>\n<html>\n<head><title>FivestaRSS Service</title></head>\n"
            f"<body>\n<h1>FivestaRSS Service</h1>\n{body}\n</body>\n</html>"
        )

    return app
