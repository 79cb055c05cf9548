from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request
from sqlalchemy.engine import Engine

from wingman.config import get_settings
from wingman.infra.geocoding.nominatim_client import NominatimClient
from wingman.services.weather_enrichment import WeatherEnrichmentService


def get_engine(request: Request) -> Engine:
    engine = getattr(request.app.state, "db_engine", None)
    if engine is None:
        raise HTTPException(status_code=500, detail="Database engine not configured")
    return engine


def get_optional_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    user_id = get_optional_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


def get_weather_service() -> WeatherEnrichmentService:
    return WeatherEnrichmentService()


def get_geocoder() -> NominatimClient:
    return NominatimClient(user_agent=get_settings().nominatim_user_agent)
