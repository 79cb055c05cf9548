from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .models import (
    Activity,
    Budget,
    Duration,
    Expense,
    GeoPoint,
    LocationType,
    SocialVibe,
)


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_ts(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported timestamp: {value!r}")
    if value.endswith("Z"):
        value = value.replace("Z", "+00:00")
    return to_utc(datetime.fromisoformat(value))


def format_ts(value: Optional[datetime]) -> Optional[str]:
    value = to_utc(value)
    return value.isoformat() if value else None


def _enum(enum_cls, value):
    if value is None or value == "":
        return None
    return enum_cls(value)


def activity_from_row(row: Mapping[str, Any], participants=()) -> Activity:
    return Activity(
        id=str(row["id"]),
        name=row["name"],
        description=row.get("description"),
        location=GeoPoint(row["lat"], row["lng"]),
        host_id=row["host_id"],
        participants=tuple(participants),
        types=tuple(row.get("types") or ()),
        tags=tuple(row.get("tags") or ()),
        budget=_enum(Budget, row.get("budget")),
        duration=_enum(Duration, row.get("duration")),
        location_type=_enum(LocationType, row.get("location_type")),
        social_vibe=_enum(SocialVibe, row.get("social_vibe")),
        date_time=to_utc(row.get("date_time")),
        created_at=to_utc(row.get("created_at")),
    )


def activity_to_dict(activity: Activity) -> dict:
    """Wire representation shared by the HTTP API and its client."""
    return {
        "id": activity.id,
        "name": activity.name,
        "description": activity.description,
        "location": activity.location.to_dict(),
        "hostId": activity.host_id,
        "participants": list(activity.participants),
        "types": list(activity.types),
        "tags": list(activity.tags),
        "budget": activity.budget.value if activity.budget else None,
        "duration": activity.duration.value if activity.duration else None,
        "locationType": activity.location_type.value if activity.location_type else None,
        "socialVibe": activity.social_vibe.value if activity.social_vibe else None,
        "dateTime": format_ts(activity.date_time),
        "createdAt": format_ts(activity.created_at),
    }


def activity_from_dict(payload: Mapping[str, Any]) -> Activity:
    location = payload.get("location") or {}
    activity_id = payload.get("id", payload.get("_id"))
    return Activity(
        id=str(activity_id) if activity_id is not None else None,
        name=payload.get("name") or payload.get("title") or "",
        description=payload.get("description"),
        location=GeoPoint(location.get("lat"), location.get("lng")),
        host_id=payload.get("hostId") or "",
        participants=tuple(payload.get("participants") or ()),
        types=tuple(payload.get("types") or ()),
        tags=tuple(payload.get("tags") or ()),
        budget=_enum(Budget, payload.get("budget")),
        duration=_enum(Duration, payload.get("duration")),
        location_type=_enum(LocationType, payload.get("locationType")),
        social_vibe=_enum(SocialVibe, payload.get("socialVibe")),
        date_time=parse_ts(payload.get("dateTime")),
        created_at=parse_ts(payload.get("createdAt")),
    )


def expense_to_dict(expense: Expense) -> dict:
    return {
        "userId": expense.user_id,
        "label": expense.label,
        "amount": expense.amount,
        "createdAt": format_ts(expense.created_at),
    }
