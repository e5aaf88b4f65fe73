"""
Unit tests for the feed HTTP endpoint.
"""

import pytest
from unittest.mock import Mock

from fastapi.testclient import TestClient

from fivestarss.models.monitored_app import MonitoredApp
from fivestarss.registry.app_registry import AppRegistry
from fivestarss.server import create_app
from fivestarss.utils.storage import FeedStore


@pytest.fixture
def registry():
    return AppRegistry([
        MonitoredApp(name="My <App>", feed_file_name="my-app.xml", app_store_id="1"),
        MonitoredApp(name="Other", feed_file_name="other.xml", google_play_id="com.other"),
    ])


@pytest.fixture
def store(tmp_path):
    return FeedStore(str(tmp_path / "feeds"))


@pytest.fixture
def client(registry, store):
    return TestClient(create_app(registry, store))


def test_serves_configured_feed(client, store):
    store.write("my-app.xml", "<rss version=\"2.0\"><channel/></rss>")

    response = client.get("/feeds/my-app.xml")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/rss+xml")
    assert "charset=utf-8" in response.headers["content-type"]
    assert response.text == "<rss version=\"2.0\"><channel/></rss>"


def test_unconfigured_feed_is_404(client, store):
    store.write("secret.xml", "<rss/>")

    response = client.get("/feeds/secret.xml")

    assert response.status_code == 404
    assert response.text == "Feed not found or not configured"


def test_configured_but_unwritten_feed_is_404(client):
    response = client.get("/feeds/other.xml")

    assert response.status_code == 404
    assert response.text == "Feed file does not exist"


def test_traversal_is_404(client):
    response = client.get("/feeds/..%2Fmonitored_apps.json")
    assert response.status_code == 404


def test_index_lists_feeds(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "<a href='/feeds/my-app.xml'>My &lt;App&gt;</a>" in response.text
    assert "/feeds/other.xml" in response.text


def test_index_without_apps(store):
    client = TestClient(create_app(AppRegistry(), store))

    assert "No monitored apps configured." in client.get("/").text


def test_lifespan_runs_and_stops_poller(registry, store):
    poller = Mock()

    with TestClient(create_app(registry, store, poller=poller)) as client:
        client.get("/")

    poller.run.assert_called_once()
    poller.stop.assert_called_once()
