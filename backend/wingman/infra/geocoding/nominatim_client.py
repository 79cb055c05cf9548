from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from wingman.config import get_settings
from wingman.domain.models import GeoPoint

logger = logging.getLogger(__name__)

PLACE_TYPES = {"city", "town", "administrative"}
MAX_SUGGESTIONS = 6


@dataclass(frozen=True)
class LocationSuggestion:
    name: str
    country: str
    display_name: str
    lat: Optional[float] = None
    lng: Optional[float] = None


class NominatimClient:
    """OpenStreetMap Nominatim lookups. Failures degrade to empty results."""

    BASE_URL = "https://nominatim.openstreetmap.org"

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        # Nominatim rejects requests without an identifying User-Agent
        self.user_agent = user_agent or get_settings().nominatim_user_agent
        self.timeout = timeout
        self.transport = transport

    def search(self, query: Optional[str]) -> List[LocationSuggestion]:
        if not query or len(query.strip()) < 2:
            return []
        params = {"format": "json", "q": query.strip(), "limit": 8, "addressdetails": 1}
        data = self._get("/search", params)
        if not isinstance(data, list):
            return []
        suggestions: List[LocationSuggestion] = []
        seen = set()
        for item in data:
            if item.get("type") not in PLACE_TYPES:
                continue
            suggestion = self._map_place(item)
            if suggestion.display_name in seen:
                continue
            seen.add(suggestion.display_name)
            suggestions.append(suggestion)
            if len(suggestions) >= MAX_SUGGESTIONS:
                break
        return suggestions

    def reverse(self, lat: float, lng: float) -> Optional[str]:
        if not GeoPoint.is_valid(lat, lng):
            return None
        data = self._get("/reverse", {"format": "json", "lat": lat, "lon": lng})
        if not isinstance(data, dict):
            return None
        return data.get("display_name")

    def _get(self, path: str, params: dict):
        try:
            with httpx.Client(
                timeout=self.timeout,
                transport=self.transport,
                headers={"User-Agent": self.user_agent},
            ) as client:
                resp = client.get(self.BASE_URL + path, params=params)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Nominatim %s lookup failed: %s", path, exc)
            return None

    @staticmethod
    def _map_place(item: dict) -> LocationSuggestion:
        display = item.get("display_name") or ""
        name = (item.get("name") or display.split(",")[0]).strip()
        country = ((item.get("address") or {}).get("country") or display.split(",")[-1] or "Unknown").strip()
        return LocationSuggestion(
            name=name,
            country=country,
            display_name=f"{name}, {country}",
            lat=_to_float(item.get("lat")),
            lng=_to_float(item.get("lon")),
        )


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
