from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.engine import Engine

from wingman.api.deps import get_current_user_id, get_engine, get_optional_user_id
from wingman.config import DEFAULT_ZOOM, MAX_ZOOM
from wingman.domain.clustering import CLUSTER_THRESHOLD, render_plan, serialize_plan
from wingman.domain.journey import build_journey
from wingman.infra.db.activities_repository import ActivitiesRepository
from wingman.services.map_surface import MapContainer, MapSurfaceController

router = APIRouter(prefix="/map", tags=["map"])

# cluster drill-down may step past the tile max zoom
ZOOM_LIMIT = MAX_ZOOM + 2


@router.get("/render-plan")
def get_render_plan(
    zoom: float = Query(DEFAULT_ZOOM, ge=0, le=ZOOM_LIMIT),
    mine: bool = Query(False),
    user_id: Optional[str] = Depends(get_optional_user_id),
    engine: Engine = Depends(get_engine),
):
    if mine and user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    activities = ActivitiesRepository(engine).list_activities(user_id if mine else None)
    plan = render_plan(activities, zoom)
    return {
        "zoom": zoom,
        "total": len(activities),
        "clustered": len(activities) > CLUSTER_THRESHOLD,
        "markers": serialize_plan(plan),
    }


@router.get("/journey")
def get_journey(
    user_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    activities = ActivitiesRepository(engine).list_activities(user_id)
    return {"points": [point.to_dict() for point in build_journey(activities)]}


@router.get("/view", response_class=HTMLResponse)
def get_map_view(
    zoom: float = Query(DEFAULT_ZOOM, ge=0, le=ZOOM_LIMIT),
    journey: bool = Query(False),
    user_id: Optional[str] = Depends(get_optional_user_id),
    engine: Engine = Depends(get_engine),
):
    repo = ActivitiesRepository(engine)
    controller = MapSurfaceController(viewer_id=user_id)
    controller.initialize(MapContainer(element_id="activity-map"))
    try:
        handle = controller.handle
        controller.set_view(handle.center, zoom)
        controller.set_activities(repo.list_activities())
        if journey and user_id is not None:
            controller.set_journey(repo.list_activities(user_id))
        return HTMLResponse(controller.render_html())
    finally:
        controller.teardown()
