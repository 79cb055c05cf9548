import json
from pathlib import Path
from typing import List, Optional

import typer

from wingman.config import DEFAULT_ZOOM, configure_logging
from wingman.domain.canonical import activity_from_dict
from wingman.domain.clustering import ClusterMarker, render_plan
from wingman.domain.journey import build_journey
from wingman.domain.models import Activity
from wingman.infra.database import get_engine
from wingman.infra.db.activities_repository import ActivitiesRepository
from wingman.infra.db.tables import metadata
from wingman.services.map_surface import MapContainer, MapSurfaceController
from wingman.services.weather_enrichment import WeatherEnrichmentService, describe_weather

app = typer.Typer(help="Activity map tooling")


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Logging level (DEBUG, INFO, ...)")):
    configure_logging(log_level)


def _load_activities(data: Optional[Path], user_id: Optional[str] = None) -> List[Activity]:
    """Activities from a JSON export (``[{...}]`` or ``{"activities": [...]}``) or the database."""
    if data is not None:
        payload = json.loads(data.read_text())
        if isinstance(payload, dict):
            payload = payload.get("activities", [])
        activities = [activity_from_dict(item) for item in payload]
        if user_id is not None:
            activities = [a for a in activities if a.is_host(user_id) or a.has_joined(user_id)]
        return activities

    engine = get_engine()
    metadata.create_all(engine)
    return ActivitiesRepository(engine).list_activities(user_id)


@app.command("clusters")
def cli_clusters(
    zoom: float = typer.Option(DEFAULT_ZOOM, help="Map zoom level"),
    data: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="JSON export of activities"),
):
    activities = _load_activities(data)
    plan = render_plan(activities, zoom)
    if not plan:
        typer.echo("No activities to show")
        raise typer.Exit(code=0)
    typer.echo("kind\tcount\tlat\tlng\tlabel")
    for entry in plan:
        if isinstance(entry, ClusterMarker):
            typer.echo(f"cluster\t{entry.count}\t{entry.centroid_lat:.5f}\t{entry.centroid_lng:.5f}\t")
        else:
            point = entry.position
            typer.echo(f"single\t1\t{point.lat:.5f}\t{point.lng:.5f}\t{entry.activity.name}")


@app.command("journey")
def cli_journey(
    user: str = typer.Option(..., help="User whose journey is built"),
    data: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="JSON export of activities"),
):
    points = build_journey(_load_activities(data, user_id=user))
    if not points:
        typer.echo("No journey: at least two activities are needed")
        raise typer.Exit(code=0)
    for index, point in enumerate(points, start=1):
        typer.echo(f"{index}\t{point.lat:.5f}\t{point.lng:.5f}")


@app.command("render-map")
def cli_render_map(
    output: Path = typer.Option(Path("activity_map.html"), help="Output HTML file"),
    zoom: float = typer.Option(DEFAULT_ZOOM, help="Map zoom level"),
    viewer: Optional[str] = typer.Option(None, help="Viewing user"),
    journey: bool = typer.Option(False, help="Draw the viewer's journey"),
    data: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="JSON export of activities"),
):
    activities = _load_activities(data)
    controller = MapSurfaceController(viewer_id=viewer)
    handle = controller.initialize(MapContainer(element_id="activity-map"))
    try:
        controller.set_view(handle.center, zoom)
        controller.set_activities(activities)
        if journey and viewer:
            controller.set_journey([a for a in activities if a.is_host(viewer) or a.has_joined(viewer)])
        path = controller.save(output)
    finally:
        controller.teardown()
    typer.echo(f"Map saved to {path}")


@app.command("weather")
def cli_weather(
    lat: float = typer.Option(..., help="Latitude"),
    lng: float = typer.Option(..., help="Longitude"),
    when: Optional[str] = typer.Option(None, help="ISO timestamp; current conditions when omitted"),
):
    result = WeatherEnrichmentService().fetch(lat, lng, when)
    typer.echo(describe_weather(result))


if __name__ == "__main__":
    app()
