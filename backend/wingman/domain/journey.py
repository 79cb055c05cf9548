from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from .models import GeoPoint

MIN_JOURNEY_POINTS = 2


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _field(item: Any, *names: str):
    for name in names:
        if isinstance(item, dict):
            if item.get(name) is not None:
                return item[name]
        elif getattr(item, name, None) is not None:
            return getattr(item, name)
    return None


def _location(item: Any) -> Optional[GeoPoint]:
    location = _field(item, "location")
    if location is None:
        return None
    if isinstance(location, GeoPoint):
        return location
    try:
        return GeoPoint(location["lat"], location["lng"])
    except (KeyError, TypeError, ValueError):
        return None


def _created_at(item: Any) -> Optional[datetime]:
    value = _field(item, "created_at", "createdAt")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    return _to_utc(value)


def build_journey(items: Iterable[Any]) -> List[GeoPoint]:
    """Order a user's activity locations chronologically.

    Accepts ``Activity`` objects or ``{"location", "createdAt"}`` mappings.
    Entries without a usable location or timestamp are skipped. ``sorted`` is
    stable, so equal timestamps keep their input order. Returns an empty list
    when there is no path to draw.
    """
    points = []
    for item in items:
        location = _location(item)
        created_at = _created_at(item)
        if location is None or created_at is None:
            continue
        points.append((created_at, location))
    if len(points) < MIN_JOURNEY_POINTS:
        return []
    return [location for _, location in sorted(points, key=lambda pair: pair[0])]
