from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple, Union

from .models import Activity, GeoPoint

# Up to this many activities every one gets its own marker
CLUSTER_THRESHOLD = 120
MAX_GRID_ZOOM = 20
CLUSTER_ZOOM_STEP = 2


@dataclass(frozen=True)
class SingleMarker:
    activity: Activity
    kind: str = "single"

    @property
    def position(self) -> GeoPoint:
        return self.activity.location


@dataclass(frozen=True)
class ClusterMarker:
    count: int
    centroid_lat: float
    centroid_lng: float
    members: Tuple[Activity, ...]
    kind: str = "cluster"

    @property
    def position(self) -> GeoPoint:
        return GeoPoint(self.centroid_lat, self.centroid_lng)


PlanEntry = Union[SingleMarker, ClusterMarker]


def grid_size(zoom: float) -> float:
    return max(1, MAX_GRID_ZOOM - zoom)


def _js_round(value: float) -> int:
    # Math.round: halves go towards +infinity, unlike Python's banker's rounding
    return math.floor(value + 0.5)


def bucket_key(point: GeoPoint, zoom: float) -> str:
    size = grid_size(zoom)
    return f"{_js_round(point.lat * size)}:{_js_round(point.lng * size)}"


def render_plan(activities: Sequence[Activity], zoom: float) -> List[PlanEntry]:
    """Decide which markers to draw for ``activities`` at ``zoom``.

    Small collections are drawn one marker per activity. Above
    ``CLUSTER_THRESHOLD`` activities are bucketed on a zoom dependent grid
    and every bucket with two or more members collapses into a cluster
    anchored on its first member's coordinate.
    """
    if len(activities) <= CLUSTER_THRESHOLD:
        return [SingleMarker(activity) for activity in activities]

    buckets: Dict[str, List[Activity]] = {}
    for activity in activities:
        buckets.setdefault(bucket_key(activity.location, zoom), []).append(activity)

    plan: List[PlanEntry] = []
    for members in buckets.values():
        if len(members) < 2:
            plan.append(SingleMarker(members[0]))
            continue
        anchor = members[0].location
        plan.append(
            ClusterMarker(
                count=len(members),
                centroid_lat=anchor.lat,
                centroid_lng=anchor.lng,
                members=tuple(members),
            )
        )
    return plan


def drill_down_zoom(zoom: float) -> float:
    return zoom + CLUSTER_ZOOM_STEP


def serialize_plan(plan: Sequence[PlanEntry]) -> List[dict]:
    payload = []
    for entry in plan:
        if isinstance(entry, ClusterMarker):
            payload.append(
                {
                    "kind": entry.kind,
                    "count": entry.count,
                    "centroidLat": entry.centroid_lat,
                    "centroidLng": entry.centroid_lng,
                    "members": [member.id for member in entry.members],
                }
            )
        else:
            payload.append(
                {
                    "kind": entry.kind,
                    "activity": entry.activity.id,
                    "lat": entry.activity.location.lat,
                    "lng": entry.activity.location.lng,
                }
            )
    return payload
