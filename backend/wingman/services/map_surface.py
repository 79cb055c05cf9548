from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import folium

from wingman.config import (
    DEFAULT_CENTER,
    DEFAULT_ZOOM,
    MAX_ZOOM,
    OSM_ATTRIBUTION,
    OSM_TILE_URL,
    SELECTED_MIN_ZOOM,
    get_settings,
)
from wingman.domain.clustering import ClusterMarker, drill_down_zoom, render_plan
from wingman.domain.journey import build_journey
from wingman.domain.models import Activity, GeoPoint, JoinState, join_state

logger = logging.getLogger(__name__)

_ELEMENT_ID = re.compile(r"^[A-Za-z][A-Za-z0-9_\-:.]*$")

JOIN_LABEL = "Join"
HOST_LABEL = "You are the host"
JOINED_LABEL = "Already joined"
SELECTED_LABEL = "Selected location"

_STATE_LABELS = {
    JoinState.CAN_JOIN: JOIN_LABEL,
    JoinState.HOST: HOST_LABEL,
    JoinState.JOINED: JOINED_LABEL,
}


class MapInitializationError(ValueError):
    pass


@dataclass(frozen=True)
class MapContainer:
    element_id: str
    height: int = 600


@dataclass(frozen=True)
class TileLayer:
    url: str = OSM_TILE_URL
    attribution: str = OSM_ATTRIBUTION
    max_zoom: int = MAX_ZOOM
    name: str = "OpenStreetMap"


@dataclass(frozen=True)
class MapMarker:
    kind: str
    position: GeoPoint
    label: str
    activity: Optional[Activity] = None
    cluster: Optional[ClusterMarker] = None
    join_state: Optional[JoinState] = None

    @property
    def action_label(self) -> Optional[str]:
        if self.join_state is None:
            return None
        return _STATE_LABELS[self.join_state]


@dataclass
class MapHandle:
    container: MapContainer
    center: GeoPoint
    zoom: float
    tile_layer: TileLayer
    markers: List[MapMarker] = field(default_factory=list)
    selected_marker: Optional[MapMarker] = None
    journey: List[GeoPoint] = field(default_factory=list)


class MapSurfaceController:
    """Owns one map viewport and keeps it in sync with the activity list.

    All layer mutations go through this object. Calls that arrive before
    ``initialize`` or after ``teardown`` (a late network response, for
    instance) are ignored.
    """

    def __init__(
        self,
        viewer_id: Optional[str] = None,
        *,
        tile_layer: Optional[TileLayer] = None,
        on_location_change: Optional[Callable[[GeoPoint], None]] = None,
        on_join_requested: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.viewer_id = viewer_id
        self.tile_layer = tile_layer or TileLayer(url=get_settings().tile_url)
        self.on_location_change = on_location_change
        self.on_join_requested = on_join_requested
        self._handle: Optional[MapHandle] = None
        self._activities: List[Activity] = []
        self.selected_location: Optional[GeoPoint] = None

    @property
    def handle(self) -> Optional[MapHandle]:
        return self._handle

    @property
    def is_initialized(self) -> bool:
        return self._handle is not None

    @property
    def zoom(self) -> Optional[float]:
        return self._handle.zoom if self._handle else None

    @property
    def markers(self) -> List[MapMarker]:
        return list(self._handle.markers) if self._handle else []

    def initialize(self, container: Union[MapContainer, str]) -> MapHandle:
        if self._handle is not None:
            raise MapInitializationError("Map is already initialized; call teardown() first")
        container = _validate_container(container)
        self._handle = MapHandle(
            container=container,
            center=GeoPoint(*DEFAULT_CENTER),
            zoom=DEFAULT_ZOOM,
            tile_layer=self.tile_layer,
        )
        logger.debug("Map initialized in #%s", container.element_id)
        return self._handle

    def on_map_click(self, lat: float, lng: float) -> GeoPoint:
        point = GeoPoint(lat, lng)
        if self._handle is None:
            logger.debug("Map click ignored: map not initialized")
            return point
        self._select(point)
        return point

    def set_selected_location(self, lat, lng) -> bool:
        """Manual coordinate entry. Invalid input leaves the map untouched."""
        if self._handle is None or not GeoPoint.is_valid(lat, lng):
            return False
        self._select(GeoPoint(lat, lng))
        return True

    def set_activities(self, activities: Sequence[Activity]) -> None:
        if self._handle is None:
            logger.debug("Ignoring %d activities: map not initialized", len(activities))
            return
        self._activities = list(activities)
        self._redraw_markers()

    def set_journey(self, activities: Sequence) -> List[GeoPoint]:
        if self._handle is None:
            return []
        self._handle.journey = build_journey(activities)
        return list(self._handle.journey)

    def set_viewer(self, viewer_id: Optional[str]) -> None:
        self.viewer_id = viewer_id
        if self._handle is not None:
            self._redraw_markers()

    def set_view(self, center: GeoPoint, zoom: float) -> None:
        if self._handle is None:
            return
        self._handle.center = center
        if zoom != self._handle.zoom:
            self._handle.zoom = zoom
            self._redraw_markers()

    def click_cluster(self, marker: Union[MapMarker, ClusterMarker]) -> None:
        cluster = marker.cluster if isinstance(marker, MapMarker) else marker
        if cluster is None:
            raise ValueError("Marker is not a cluster")
        if self._handle is None:
            return
        self.set_view(cluster.position, drill_down_zoom(self._handle.zoom))

    def request_join(self, activity_id: str) -> bool:
        """Forward a join click from a marker popup. Only joinable markers respond."""
        for marker in self.markers:
            if marker.activity is not None and marker.activity.id == activity_id:
                if marker.join_state != JoinState.CAN_JOIN:
                    return False
                if self.on_join_requested is not None:
                    self.on_join_requested(activity_id)
                return True
        return False

    def to_folium(self) -> folium.Map:
        if self._handle is None:
            raise RuntimeError("Map is not initialized")
        handle = self._handle
        tiles = handle.tile_layer
        fmap = folium.Map(
            location=handle.center.as_list(),
            zoom_start=handle.zoom,
            tiles=None,
            max_zoom=tiles.max_zoom,
            height=handle.container.height,
        )
        folium.TileLayer(tiles=tiles.url, attr=tiles.attribution, name=tiles.name, max_zoom=tiles.max_zoom).add_to(fmap)

        group = folium.FeatureGroup(name="Activities").add_to(fmap)
        for marker in handle.markers:
            if marker.kind == "cluster":
                folium.Marker(
                    marker.position.as_list(),
                    icon=folium.DivIcon(html=f'<div class="activity-cluster">{marker.cluster.count}</div>'),
                    tooltip=marker.label,
                ).add_to(group)
            else:
                folium.Marker(
                    marker.position.as_list(),
                    popup=folium.Popup(_popup_html(marker), max_width=260),
                    tooltip=html.escape(marker.label),
                ).add_to(group)

        if handle.selected_marker is not None:
            folium.Marker(
                handle.selected_marker.position.as_list(),
                popup=SELECTED_LABEL,
                icon=folium.Icon(color="red"),
            ).add_to(fmap)

        if len(handle.journey) >= 2:
            folium.PolyLine(
                [point.as_list() for point in handle.journey],
                color="#2563eb",
                weight=3,
                opacity=0.8,
            ).add_to(fmap)
        return fmap

    def render_html(self) -> str:
        return self.to_folium().get_root().render()

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        self.to_folium().save(str(path))
        return path

    def teardown(self) -> None:
        if self._handle is None:
            return
        logger.debug("Map in #%s torn down", self._handle.container.element_id)
        self._handle.markers.clear()
        self._handle.journey.clear()
        self._handle.selected_marker = None
        self._handle = None
        self._activities = []
        self.selected_location = None

    def _select(self, point: GeoPoint) -> None:
        handle = self._handle
        handle.selected_marker = MapMarker(kind="selected", position=point, label=SELECTED_LABEL)
        self.selected_location = point
        self.set_view(point, max(handle.zoom, SELECTED_MIN_ZOOM))
        if self.on_location_change is not None:
            self.on_location_change(point)

    def _redraw_markers(self) -> None:
        handle = self._handle
        markers: List[MapMarker] = []
        for entry in render_plan(self._activities, handle.zoom):
            if isinstance(entry, ClusterMarker):
                markers.append(
                    MapMarker(
                        kind="cluster",
                        position=entry.position,
                        label=f"{entry.count} activities",
                        cluster=entry,
                    )
                )
            else:
                markers.append(
                    MapMarker(
                        kind="single",
                        position=entry.position,
                        label=entry.activity.name,
                        activity=entry.activity,
                        join_state=join_state(entry.activity, self.viewer_id),
                    )
                )
        handle.markers = markers


def _validate_container(container) -> MapContainer:
    if isinstance(container, str):
        container = MapContainer(element_id=container)
    if not isinstance(container, MapContainer):
        raise MapInitializationError(f"Invalid map container: {container!r}")
    if not container.element_id or not _ELEMENT_ID.match(container.element_id):
        raise MapInitializationError(f"Invalid container element id: {container.element_id!r}")
    if isinstance(container.height, bool) or not isinstance(container.height, int) or container.height <= 0:
        raise MapInitializationError(f"Invalid container height: {container.height!r}")
    return container


def _popup_html(marker: MapMarker) -> str:
    activity = marker.activity
    parts = [f"<strong>{html.escape(activity.name)}</strong>"]
    if activity.description:
        parts.append(f"<p>{html.escape(activity.description)}</p>")
    parts.append(f"<p>{len(activity.participants)} joined</p>")
    if marker.join_state == JoinState.CAN_JOIN:
        parts.append(
            f'<button type="button" class="join-activity" data-activity-id="{html.escape(activity.id or "")}">'
            f"{JOIN_LABEL}</button>"
        )
    else:
        parts.append(f'<span class="join-status">{marker.action_label}</span>')
    return "".join(parts)
