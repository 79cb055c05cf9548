from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import httpx

from wingman.config import get_settings


class OpenWeatherClient:
    BASE_URL = "https://api.openweathermap.org/data/2.5"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key or get_settings().openweather_api_key
        if not self.api_key:
            raise RuntimeError("OPENWEATHER_API_KEY is required for OpenWeatherClient")
        self.timeout = timeout
        self.transport = transport

    def fetch_current(self, lat: float, lng: float) -> dict:
        data = self._get("/weather", lat, lng)
        return self._map_entry(data, observed_at=self._parse_epoch(data.get("dt")))

    def fetch_forecast(self, lat: float, lng: float) -> List[dict]:
        data = self._get("/forecast", lat, lng)
        entries = []
        for item in data.get("list", []):
            entries.append(self._map_entry(item, observed_at=self._parse_epoch(item.get("dt"))))
        return entries

    def _get(self, path: str, lat: float, lng: float) -> dict:
        params = {"lat": lat, "lon": lng, "units": "metric", "appid": self.api_key}
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            resp = client.get(self.BASE_URL + path, params=params)
            resp.raise_for_status()
            return resp.json()

    @staticmethod
    def _map_entry(item: dict, *, observed_at: Optional[datetime]) -> dict:
        main = item.get("main") or {}
        conditions = (item.get("weather") or [{}])[0]
        temp = main.get("temp")
        return {
            "observed_at": observed_at,
            "temp_c": float(temp) if temp is not None else None,
            "icon": conditions.get("icon"),
            "description": conditions.get("description"),
        }

    @staticmethod
    def _parse_epoch(value) -> Optional[datetime]:
        if value is None:
            return None
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
