"""
Unit tests for the Google Play review source.

The Android Publisher client is replaced with a MagicMock; no network
or credentials are used.
"""

import pytest
import httplib2
from datetime import datetime, timezone
from unittest.mock import MagicMock

from googleapiclient.errors import HttpError

from fivestarss.models.review import STORE_GOOGLE_PLAY
from fivestarss.sources.base import ReviewSourceError
from fivestarss.sources.google_play import GooglePlayReviewSource


def _raw_review(review_id, seconds, text="Great app, love it", **comment):
    user_comment = {
        "text": text,
        "lastModified": {"seconds": str(seconds)},
        "starRating": 4,
    }
    user_comment.update(comment)
    return {
        "reviewId": review_id,
        "authorName": "Jane",
        "comments": [{"userComment": user_comment}],
    }


def _source_with_pages(pages, max_pages=5):
    source = GooglePlayReviewSource("unused.json", max_pages=max_pages, page_size=2)
    source._service = MagicMock()
    source._service.reviews.return_value.list.return_value.execute.side_effect = pages
    return source


def test_convert_review_fields():
    source = _source_with_pages([{
        "reviews": [_raw_review(
            "abc",
            1704110400,
            text="  Great app, love it \n",
            appVersionName="2.4.1",
            device="Pixel 7",
            androidOsVersion=34,
        )]
    }])

    reviews = source.fetch("com.example.app", "My App")

    assert len(reviews) == 1
    review = reviews[0]
    assert review.id == "google-play-abc-20240101120000"
    assert review.date == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert review.body == "Great app, love it"
    assert review.title == "Great app, love it"
    assert review.rating == 4
    assert review.author == "Jane"
    assert review.app_name == "My App"
    assert review.source == STORE_GOOGLE_PLAY
    assert review.version == "2.4.1"
    assert review.device == "Pixel 7 (Android 34)"
    assert review.territory is None


def test_convert_review_defaults():
    raw = {
        "reviewId": "xyz",
        "comments": [{"userComment": {
            "text": "",
            "lastModified": {"seconds": "1704110400"},
        }}],
    }
    source = _source_with_pages([{"reviews": [raw]}])

    review = source.fetch("com.example.app", "My App")[0]

    assert review.author == "Anonymous"
    assert review.rating == 0
    assert review.title == "Review"
    assert review.version is None
    assert review.device is None


def test_fetch_follows_page_tokens():
    source = _source_with_pages([
        {"reviews": [_raw_review("a", 1704110400)], "tokenPagination": {"nextPageToken": "t1"}},
        {"reviews": [_raw_review("b", 1704196800)]},
    ])

    reviews = source.fetch("com.example.app", "My App")

    list_mock = source._service.reviews.return_value.list
    assert list_mock.call_count == 2
    first_call, second_call = list_mock.call_args_list
    assert first_call.kwargs == {"packageName": "com.example.app", "maxResults": 2}
    assert second_call.kwargs["token"] == "t1"

    # Newest first
    assert [r.id for r in reviews] == [
        "google-play-b-20240102120000",
        "google-play-a-20240101120000",
    ]


def test_fetch_stops_at_page_cap():
    endless = {"reviews": [_raw_review("a", 1704110400)], "tokenPagination": {"nextPageToken": "more"}}
    source = _source_with_pages([endless] * 10, max_pages=3)

    source.fetch("com.example.app", "My App")

    assert source._service.reviews.return_value.list.call_count == 3


def test_fetch_with_no_reviews():
    source = _source_with_pages([{}])
    assert source.fetch("com.example.app", "My App") == []


def test_http_error_becomes_source_error():
    response = httplib2.Response({"status": 403, "reason": "Forbidden"})
    error = HttpError(response, b'{"error": {"message": "The caller does not have permission"}}')
    source = _source_with_pages([error])

    with pytest.raises(ReviewSourceError):
        source.fetch("com.example.app", "My App")


def test_missing_key_path():
    source = GooglePlayReviewSource(None)

    with pytest.raises(ReviewSourceError, match="not configured"):
        source.fetch("com.example.app", "My App")


def test_nonexistent_key_file(tmp_path):
    source = GooglePlayReviewSource(str(tmp_path / "missing.json"))

    with pytest.raises(ReviewSourceError, match="not found"):
        source.fetch("com.example.app", "My App")
