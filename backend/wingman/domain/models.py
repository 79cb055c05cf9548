from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

MAX_TYPES = 16
MAX_TAGS = 32


class Budget(str, Enum):
    FREE = "free"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Duration(str, Enum):
    SHORT = "short"
    HALF_DAY = "half_day"
    FULL_DAY = "full_day"
    MULTI_DAY = "multi_day"


class LocationType(str, Enum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    MIXED = "mixed"


class SocialVibe(str, Enum):
    RELAXED = "relaxed"
    SOCIAL = "social"
    ENERGETIC = "energetic"


class JoinState(str, Enum):
    HOST = "host"
    JOINED = "joined"
    CAN_JOIN = "can_join"


def _coerce_coordinate(value, name: str, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number")
    value = float(value)
    if value != value or not -limit <= value <= limit:
        raise ValueError(f"{name} must be within [-{limit:g}, {limit:g}]")
    return value


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __post_init__(self):
        object.__setattr__(self, "lat", _coerce_coordinate(self.lat, "lat", 90))
        object.__setattr__(self, "lng", _coerce_coordinate(self.lng, "lng", 180))

    def as_list(self) -> list[float]:
        return [self.lat, self.lng]

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def is_valid(cls, lat, lng) -> bool:
        try:
            cls(lat, lng)
        except ValueError:
            return False
        return True


@dataclass(frozen=True)
class Activity:
    """Read model of a persisted activity.

    ``participants`` never contains duplicates and never implies host status;
    being the host is decided by comparing against ``host_id`` only.
    """

    name: str
    location: GeoPoint
    host_id: str
    id: Optional[str] = None
    description: Optional[str] = None
    participants: Tuple[str, ...] = ()
    types: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    budget: Optional[Budget] = None
    duration: Optional[Duration] = None
    location_type: Optional[LocationType] = None
    social_vibe: Optional[SocialVibe] = None
    date_time: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        deduped = tuple(dict.fromkeys(self.participants))
        object.__setattr__(self, "participants", deduped)
        object.__setattr__(self, "types", tuple(self.types)[:MAX_TYPES])
        object.__setattr__(self, "tags", tuple(self.tags)[:MAX_TAGS])

    @property
    def title(self) -> str:
        return self.name

    def is_host(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id == self.host_id

    def has_joined(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id in self.participants


def join_state(activity: Activity, viewer_id: Optional[str]) -> JoinState:
    if activity.is_host(viewer_id):
        return JoinState.HOST
    if activity.has_joined(viewer_id):
        return JoinState.JOINED
    return JoinState.CAN_JOIN


@dataclass(frozen=True)
class SharedExpense:
    label: str
    amount: float

    def __post_init__(self):
        if not (self.label or "").strip():
            raise ValueError("expense label is required")
        if isinstance(self.amount, bool) or not isinstance(self.amount, (int, float)) or not self.amount > 0:
            raise ValueError("expense amount must be a positive number")


@dataclass(frozen=True)
class Expense:
    user_id: str
    label: str
    amount: float
    created_at: Optional[datetime] = None


@dataclass
class ActivityDraft:
    """Validated input for a new activity; persistence assigns id and created_at."""

    name: str
    location: GeoPoint
    description: Optional[str] = None
    types: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    budget: Optional[Budget] = None
    duration: Optional[Duration] = None
    location_type: Optional[LocationType] = None
    social_vibe: Optional[SocialVibe] = None
    date_time: Optional[datetime] = None
    shared_expenses: list[SharedExpense] = field(default_factory=list)

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValueError("name is required")
        self.types = list(self.types)[:MAX_TYPES]
        self.tags = list(self.tags)[:MAX_TAGS]
