from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from wingman.infra.weather.openweather_client import OpenWeatherClient

from .base import ForecastRangeError, WeatherProvider, WeatherSnapshot

# forecast entries are three hours apart
FORECAST_SLACK = timedelta(hours=3)


class OpenWeatherProvider(WeatherProvider):
    def __init__(self, client: Optional[OpenWeatherClient] = None):
        self.client = client or OpenWeatherClient()

    def fetch_point(
        self,
        *,
        lat: float,
        lng: float,
        when: Optional[datetime] = None,
    ) -> WeatherSnapshot:
        if when is None:
            entry = self.client.fetch_current(lat, lng)
        else:
            entry = self._closest(self.client.fetch_forecast(lat, lng), when)
        if entry.get("temp_c") is None:
            raise ValueError("Weather payload without temperature")
        return WeatherSnapshot(
            temp_c=entry["temp_c"],
            icon=entry.get("icon"),
            description=entry.get("description"),
            observed_at=entry.get("observed_at"),
        )

    @staticmethod
    def _closest(entries: list[dict], when: datetime) -> dict:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        timed = [entry for entry in entries if entry.get("observed_at") is not None]
        if not timed:
            raise ValueError("Forecast payload without entries")
        first = min(entry["observed_at"] for entry in timed)
        last = max(entry["observed_at"] for entry in timed)
        if not first - FORECAST_SLACK <= when <= last + FORECAST_SLACK:
            raise ForecastRangeError(f"{when.isoformat()} is outside the forecast window")
        return min(timed, key=lambda entry: abs((entry["observed_at"] - when).total_seconds()))
