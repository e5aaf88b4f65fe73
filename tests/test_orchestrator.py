"""
Unit tests for the Polling Orchestrator.
"""

import threading
from unittest.mock import Mock

import config.settings as settings
from fivestarss.feed.reconciler import ReconcileResult
from fivestarss.models.monitored_app import MonitoredApp
from fivestarss.orchestrator import PollingOrchestrator
from fivestarss.registry.app_registry import AppRegistry
from fivestarss.sources.app_store import AppStoreReviewSource
from fivestarss.sources.google_play import GooglePlayReviewSource


def _registry(count=2):
    return AppRegistry([
        MonitoredApp(name=f"App {i}", feed_file_name=f"app-{i}.xml", app_store_id=str(i))
        for i in range(count)
    ])


def _orchestrator(registry=None, interval=0):
    reconciler = Mock()
    reconciler.process_app.return_value = ReconcileResult(written=True, new_count=1)
    return PollingOrchestrator(
        registry=registry if registry is not None else _registry(),
        reconciler=reconciler,
        polling_interval_seconds=interval
    )


def test_run_cycle_processes_every_app():
    orchestrator = _orchestrator()

    results = orchestrator.run_cycle()

    assert list(results) == ["app-0.xml", "app-1.xml"]
    assert orchestrator.reconciler.process_app.call_count == 2


def test_run_cycle_without_apps():
    orchestrator = _orchestrator(registry=AppRegistry())

    assert orchestrator.run_cycle() == {}
    orchestrator.reconciler.process_app.assert_not_called()


def test_overlapping_cycle_is_skipped():
    orchestrator = _orchestrator()

    with orchestrator._cycle_lock:
        assert orchestrator.run_cycle() is None

    orchestrator.reconciler.process_app.assert_not_called()


def test_stop_ends_cycle_after_current_app():
    orchestrator = _orchestrator(registry=_registry(3))

    def process_and_stop(app):
        orchestrator.stop()
        return ReconcileResult()

    orchestrator.reconciler.process_app.side_effect = process_and_stop

    results = orchestrator.run_cycle()

    assert list(results) == ["app-0.xml"]


def test_run_exits_when_stopped():
    orchestrator = _orchestrator(interval=60)
    stop_event = threading.Event()

    def process_and_stop(app):
        stop_event.set()
        return ReconcileResult()

    orchestrator.reconciler.process_app.side_effect = process_and_stop

    orchestrator.run(stop_event)

    assert orchestrator.stop_event is stop_event
    assert orchestrator.reconciler.process_app.call_count == 1


def test_run_survives_cycle_errors():
    """Test that an unexpected cycle error does not end the loop."""
    orchestrator = _orchestrator()
    calls = []

    def flaky_cycle():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        orchestrator.stop()

    orchestrator.run_cycle = flaky_cycle

    orchestrator.run()

    assert len(calls) == 2


def test_run_does_not_start_when_already_stopped():
    orchestrator = _orchestrator()
    orchestrator.stop()

    orchestrator.run()

    orchestrator.reconciler.process_app.assert_not_called()


def test_from_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "FEED_DIRECTORY", tmp_path / "feeds")
    monkeypatch.setattr(settings, "POLLING_INTERVAL_MINUTES", 2.0)
    monkeypatch.setattr(settings, "MAX_REVIEWS_PER_FEED", 50)

    orchestrator = PollingOrchestrator.from_settings(_registry())

    assert orchestrator.polling_interval_seconds == 120
    assert orchestrator.reconciler.codec.max_items == 50
    assert (tmp_path / "feeds").is_dir()
    sources = orchestrator.reconciler.sources
    assert isinstance(sources["Google Play"], GooglePlayReviewSource)
    assert isinstance(sources["App Store"], AppStoreReviewSource)
