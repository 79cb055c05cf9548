from __future__ import annotations

from datetime import datetime, timezone

import pytest

from wingman.config import DEFAULT_ZOOM, SELECTED_MIN_ZOOM
from wingman.domain.clustering import CLUSTER_THRESHOLD
from wingman.domain.models import Activity, GeoPoint, JoinState
from wingman.services.map_surface import (
    HOST_LABEL,
    JOIN_LABEL,
    JOINED_LABEL,
    MapContainer,
    MapInitializationError,
    MapSurfaceController,
)


def make_activity(idx: int, lat: float, lng: float, host: str = "host", participants=()) -> Activity:
    return Activity(
        id=str(idx),
        name=f"Activity {idx}",
        location=GeoPoint(lat, lng),
        host_id=host,
        participants=tuple(participants),
        created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )


def crowded() -> list[Activity]:
    activities = [make_activity(i, -60 + i, -150 + 2 * i) for i in range(CLUSTER_THRESHOLD - 1)]
    activities += [make_activity(900, 36.80, 10.18), make_activity(901, 36.81, 10.18)]
    return activities


@pytest.fixture()
def controller():
    ctrl = MapSurfaceController(viewer_id="viewer")
    ctrl.initialize(MapContainer(element_id="activity-map"))
    yield ctrl
    ctrl.teardown()


@pytest.mark.parametrize(
    "container",
    ["", "1-map", "has space", MapContainer(element_id="map", height=0), MapContainer(element_id="map", height=True)],
)
def test_initialize_rejects_invalid_containers(container):
    ctrl = MapSurfaceController()
    with pytest.raises(MapInitializationError):
        ctrl.initialize(container)
    assert not ctrl.is_initialized


def test_initialize_twice_requires_teardown(controller):
    with pytest.raises(MapInitializationError):
        controller.initialize("other-map")
    controller.teardown()
    controller.initialize("other-map")
    assert controller.zoom == DEFAULT_ZOOM


def test_map_click_selects_location_and_notifies():
    seen = []
    ctrl = MapSurfaceController(on_location_change=seen.append)
    ctrl.initialize("activity-map")
    point = ctrl.on_map_click(36.8, 10.18)
    assert seen == [point]
    assert ctrl.handle.selected_marker.position == point
    assert ctrl.zoom == SELECTED_MIN_ZOOM

    ctrl.on_map_click(36.9, 10.2)
    assert ctrl.handle.selected_marker.position == GeoPoint(36.9, 10.2)
    assert len(seen) == 2


def test_manual_location_rejects_invalid_input(controller):
    assert controller.set_selected_location("abc", 10) is False
    assert controller.set_selected_location(95, 10) is False
    assert controller.handle.selected_marker is None
    assert controller.set_selected_location(36.8, 10.18) is True
    assert controller.selected_location == GeoPoint(36.8, 10.18)


def test_redraw_replaces_markers(controller):
    activities = [make_activity(1, 36.8, 10.1), make_activity(2, 36.9, 10.2)]
    controller.set_activities(activities)
    first = [m.position for m in controller.markers]
    controller.set_activities(activities)
    assert [m.position for m in controller.markers] == first
    assert len(controller.markers) == 2
    controller.set_activities(activities[:1])
    assert [m.activity.id for m in controller.markers] == ["1"]


def test_redraw_of_clustered_activities_is_stable(controller):
    activities = crowded()
    controller.set_activities(activities)
    first = [(m.kind, m.position) for m in controller.markers]
    assert any(kind == "cluster" for kind, _ in first)
    controller.set_activities(activities)
    assert [(m.kind, m.position) for m in controller.markers] == first
    controller.set_view(GeoPoint(36.8, 10.18), DEFAULT_ZOOM)
    assert [(m.kind, m.position) for m in controller.markers] == first


def test_markers_carry_join_state(controller):
    controller.set_activities(
        [
            make_activity(1, 36.8, 10.1, host="viewer"),
            make_activity(2, 36.9, 10.2, participants=["viewer"]),
            make_activity(3, 37.0, 10.3),
        ]
    )
    states = {m.activity.id: (m.join_state, m.action_label) for m in controller.markers}
    assert states == {
        "1": (JoinState.HOST, HOST_LABEL),
        "2": (JoinState.JOINED, JOINED_LABEL),
        "3": (JoinState.CAN_JOIN, JOIN_LABEL),
    }


def test_changing_viewer_recomputes_states(controller):
    controller.set_activities([make_activity(1, 36.8, 10.1, host="someone-else")])
    assert controller.markers[0].join_state is JoinState.CAN_JOIN
    controller.set_viewer("someone-else")
    assert controller.markers[0].join_state is JoinState.HOST


def test_cluster_click_zooms_in_by_two(controller):
    controller.set_activities(crowded())
    cluster = next(m for m in controller.markers if m.kind == "cluster")
    controller.click_cluster(cluster)
    assert controller.zoom == DEFAULT_ZOOM + 2
    assert controller.handle.center == GeoPoint(36.80, 10.18)


def test_cluster_click_at_max_zoom_is_not_clamped(controller):
    controller.set_activities(crowded())
    controller.set_view(GeoPoint(36.8, 10.18), 19)
    cluster = next(m for m in controller.markers if m.kind == "cluster")
    controller.click_cluster(cluster)
    assert controller.zoom == 21


def test_request_join_only_forwards_joinable_markers():
    requested = []
    ctrl = MapSurfaceController(viewer_id="viewer", on_join_requested=requested.append)
    ctrl.initialize("activity-map")
    ctrl.set_activities([make_activity(1, 36.8, 10.1, host="viewer"), make_activity(2, 36.9, 10.2)])
    assert ctrl.request_join("1") is False
    assert ctrl.request_join("2") is True
    assert ctrl.request_join("missing") is False
    assert requested == ["2"]


def test_journey_requires_two_points(controller):
    assert controller.set_journey([make_activity(1, 36.8, 10.1)]) == []
    points = controller.set_journey([make_activity(1, 36.8, 10.1), make_activity(2, 36.9, 10.2)])
    assert len(points) == 2


def test_calls_after_teardown_are_ignored(controller):
    controller.teardown()
    controller.teardown()
    controller.set_activities([make_activity(1, 36.8, 10.1)])
    assert controller.markers == []
    assert controller.set_journey([make_activity(1, 36.8, 10.1), make_activity(2, 36.9, 10.2)]) == []
    assert controller.set_selected_location(36.8, 10.1) is False


def test_render_html_contains_layers(controller):
    controller.set_activities([make_activity(1, 36.8, 10.1), make_activity(2, 36.9, 10.2, host="viewer")])
    controller.set_journey([make_activity(1, 36.8, 10.1), make_activity(2, 36.9, 10.2)])
    controller.set_selected_location(36.85, 10.15)
    html = controller.render_html()
    assert "OpenStreetMap" in html
    assert JOIN_LABEL in html
    assert HOST_LABEL in html
    assert "L.polyline" in html


def test_save_writes_html_file(controller, tmp_path):
    controller.set_activities([make_activity(1, 36.8, 10.1)])
    path = controller.save(tmp_path / "map.html")
    assert path.exists()
    assert "leaflet" in path.read_text().lower()


def test_render_requires_initialized_map():
    with pytest.raises(RuntimeError):
        MapSurfaceController().render_html()


def test_tile_url_comes_from_settings(monkeypatch):
    monkeypatch.setenv("MAP_TILE_URL", "https://tiles.example.com/{z}/{x}/{y}.png")
    ctrl = MapSurfaceController()
    ctrl.initialize("activity-map")
    assert ctrl.tile_layer.url == "https://tiles.example.com/{z}/{x}/{y}.png"
    assert "tiles.example.com" in ctrl.render_html()
    ctrl.teardown()
