from __future__ import annotations

from datetime import datetime, timezone

from wingman.domain.journey import build_journey
from wingman.domain.models import Activity, GeoPoint


def activity(idx: int, created_at, lat: float = 36.8, lng: float = 10.1) -> Activity:
    return Activity(
        id=str(idx),
        name=f"a{idx}",
        location=GeoPoint(lat + idx / 100, lng),
        host_id="u1",
        created_at=created_at,
    )


def test_journey_orders_by_creation_time():
    a = activity(1, datetime(2026, 3, 3, tzinfo=timezone.utc))
    b = activity(2, datetime(2026, 3, 1, tzinfo=timezone.utc))
    c = activity(3, datetime(2026, 3, 2, tzinfo=timezone.utc))
    assert build_journey([a, b, c]) == [b.location, c.location, a.location]


def test_journey_keeps_input_order_on_equal_timestamps():
    same = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
    first, second = activity(1, same), activity(2, same)
    assert build_journey([first, second]) == [first.location, second.location]
    assert build_journey([second, first]) == [second.location, first.location]


def test_journey_needs_two_points():
    assert build_journey([]) == []
    assert build_journey([activity(1, datetime(2026, 3, 1, tzinfo=timezone.utc))]) == []


def test_journey_skips_entries_without_timestamp():
    dated = activity(1, datetime(2026, 3, 1, tzinfo=timezone.utc))
    undated = activity(2, None)
    assert build_journey([dated, undated]) == []


def test_journey_accepts_wire_dicts_and_mixed_timezones():
    items = [
        {"location": {"lat": 36.9, "lng": 10.2}, "createdAt": "2026-03-02T00:00:00Z"},
        {"location": {"lat": 36.8, "lng": 10.1}, "created_at": datetime(2026, 3, 1)},
        {"location": {"lat": "bad", "lng": 10.1}, "createdAt": "2026-02-01T00:00:00Z"},
    ]
    assert build_journey(items) == [GeoPoint(36.8, 10.1), GeoPoint(36.9, 10.2)]
