"""
Unit tests for the review data model and its helpers.
"""

import pytest
from datetime import datetime, timezone

from fivestarss.models.review import (
    ReviewItem,
    STORE_GOOGLE_PLAY,
    STORE_SYSTEM,
    SERVICE_ALERT_AUTHOR,
    build_service_alert,
    compose_device,
    derive_title,
    make_review_id,
)


def _review(**overrides):
    fields = dict(
        id="google-play-abc-20240101120000",
        title="Great app",
        body="Great app, love it",
        rating=4,
        author="Jane",
        date=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        app_name="My App",
        source=STORE_GOOGLE_PLAY,
    )
    fields.update(overrides)
    return ReviewItem(**fields)


def test_rating_validation():
    """Test that ratings outside 0-5 are rejected."""
    assert _review(rating=0).rating == 0
    assert _review(rating=5).rating == 5

    with pytest.raises(ValueError):
        _review(rating=6)

    with pytest.raises(ValueError):
        _review(rating=-1)


def test_source_validation():
    """Test that unknown store labels are rejected."""
    with pytest.raises(ValueError, match="Invalid source"):
        _review(source="Windows Store")


def test_optional_fields_default_to_none():
    review = _review()
    assert review.version is None
    assert review.territory is None
    assert review.device is None
    assert review.is_service_alert is False


def test_derive_title_short_body():
    assert derive_title("Great app, love it") == "Great app, love it"


def test_derive_title_collapses_whitespace():
    assert derive_title("  Great   app\n\tlove it ") == "Great app love it"


def test_derive_title_truncates_to_ten_words():
    body = "one two three four five six seven eight nine ten eleven twelve"
    assert derive_title(body) == "one two three four five six seven eight nine ten..."


def test_derive_title_hard_caps_length():
    """Test that very long words still produce a title of at most 100 chars."""
    body = "x" * 150 + " tail"
    title = derive_title(body)

    assert len(title) == 100
    assert title.endswith("...")
    assert title[:97] == "x" * 97


def test_derive_title_empty_body():
    assert derive_title("") == "Review"
    assert derive_title("   ") == "Review"
    assert derive_title(None) == "Review"


def test_make_review_id_embeds_timestamp():
    date = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert make_review_id("google-play", "abc", date) == "google-play-abc-20240101120000"


def test_edited_review_gets_new_id():
    """Test that the same native review at a new time has a different id."""
    first = make_review_id("app-store", "42", datetime(2024, 1, 1, tzinfo=timezone.utc))
    edited = make_review_id("app-store", "42", datetime(2024, 1, 2, tzinfo=timezone.utc))
    assert first != edited


def test_compose_device():
    assert compose_device("Pixel 7", 14) == "Pixel 7 (Android 14)"
    assert compose_device("Pixel 7", None) == "Pixel 7"
    assert compose_device(None, 13) == "Android 13"
    assert compose_device(None, None) is None
    assert compose_device("", None) is None


def test_build_service_alert():
    now = datetime(2024, 5, 1, 8, 30, 15, 123456, tzinfo=timezone.utc)
    alert = build_service_alert("Google Play API Error: <b>quota</b>", now=now)

    assert alert.id == "SERVICE_ALERT_20240501_083015_123456"
    assert alert.source == STORE_SYSTEM
    assert alert.is_service_alert
    assert alert.rating == 0
    assert alert.author == SERVICE_ALERT_AUTHOR
    assert alert.date == datetime(2024, 5, 1, 8, 30, 15, tzinfo=timezone.utc)
    assert alert.body == (
        "Service error at 2024-05-01 08:30:15 UTC: "
        "Google Play API Error: &lt;b&gt;quota&lt;/b&gt;"
    )


def test_build_service_alert_defaults_to_now():
    before = datetime.now(timezone.utc).replace(microsecond=0)
    alert = build_service_alert("boom")
    after = datetime.now(timezone.utc)

    assert before <= alert.date <= after
    assert alert.id.startswith("SERVICE_ALERT_")
