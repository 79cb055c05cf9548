from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from wingman.api.deps import get_geocoder
from wingman.infra.geocoding.nominatim_client import NominatimClient

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("/search")
def search_locations(
    q: str = Query(""),
    geocoder: NominatimClient = Depends(get_geocoder),
):
    suggestions = geocoder.search(q)
    return {
        "results": [
            {
                "name": item.name,
                "country": item.country,
                "displayName": item.display_name,
                "lat": item.lat,
                "lng": item.lng,
            }
            for item in suggestions
        ]
    }


@router.get("/reverse")
def reverse_location(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    geocoder: NominatimClient = Depends(get_geocoder),
):
    return {"displayName": geocoder.reverse(lat, lng)}
