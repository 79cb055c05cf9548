from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from wingman.domain.canonical import activity_from_dict, activity_to_dict, parse_ts
from wingman.domain.models import Activity, Budget, GeoPoint, SocialVibe


def test_parse_ts_handles_zulu_and_naive_values():
    assert parse_ts("2026-03-01T10:00:00Z") == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_ts("2026-03-01T12:00:00+02:00") == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_ts(datetime(2026, 3, 1, 10)).tzinfo == timezone.utc
    assert parse_ts(None) is None
    assert parse_ts("") is None


def test_parse_ts_rejects_garbage():
    with pytest.raises(ValueError):
        parse_ts("next tuesday")
    with pytest.raises(ValueError):
        parse_ts(12345)


def test_activity_wire_format_is_camel_case():
    activity = Activity(
        id="7",
        name="Sunset walk",
        location=GeoPoint(36.85, 10.33),
        host_id="u1",
        participants=("u2",),
        budget=Budget.FREE,
        social_vibe=SocialVibe.RELAXED,
        created_at=datetime(2026, 3, 1, 18, tzinfo=timezone(timedelta(hours=1))),
    )
    payload = activity_to_dict(activity)
    assert payload["hostId"] == "u1"
    assert payload["location"] == {"lat": 36.85, "lng": 10.33}
    assert payload["socialVibe"] == "relaxed"
    assert payload["locationType"] is None
    assert payload["createdAt"] == "2026-03-01T17:00:00+00:00"
    assert activity_from_dict(payload) == activity


def test_activity_from_dict_accepts_legacy_keys():
    activity = activity_from_dict(
        {"_id": "abc", "title": "Old name", "location": {"lat": 1, "lng": 2}, "hostId": "h"}
    )
    assert activity.id == "abc"
    assert activity.name == "Old name"
