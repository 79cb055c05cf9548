from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from wingman.api.deps import get_weather_service
from wingman.services.weather_enrichment import WeatherEnrichmentService, weather_to_dict

router = APIRouter(tags=["weather"])


@router.get("/weather")
def get_weather(
    lat: float = Query(...),
    lng: float = Query(...),
    when: Optional[str] = Query(None, description="ISO timestamp; omitted means current conditions"),
    service: WeatherEnrichmentService = Depends(get_weather_service),
):
    # degraded results are still a 200: the widget renders "Weather unavailable"
    return weather_to_dict(service.fetch(lat, lng, when))
