from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx

from wingman.domain.canonical import parse_ts
from wingman.domain.models import GeoPoint
from wingman.providers.weather.base import (
    ForecastRangeError,
    WeatherProvider,
    WeatherResult,
    WeatherSnapshot,
    WeatherUnavailable,
)
from wingman.providers.weather.openweather import OpenWeatherProvider

logger = logging.getLogger(__name__)


class WeatherEnrichmentService:
    """Best-effort weather for a point. ``fetch`` never raises."""

    def __init__(
        self,
        provider: Optional[WeatherProvider] = None,
        provider_factory: Callable[[], WeatherProvider] = OpenWeatherProvider,
    ) -> None:
        self._provider = provider
        self._provider_factory = provider_factory

    def fetch(self, lat: float, lng: float, when_iso: Optional[str] = None) -> WeatherResult:
        if not GeoPoint.is_valid(lat, lng):
            return WeatherUnavailable("invalid_coordinates")
        try:
            when = parse_ts(when_iso)
        except ValueError:
            return WeatherUnavailable("invalid_timestamp")
        try:
            provider = self._resolve_provider()
        except RuntimeError as exc:
            logger.warning("Weather provider unavailable: %s", exc)
            return WeatherUnavailable("missing_api_key")
        try:
            return provider.fetch_point(lat=lat, lng=lng, when=when)
        except ForecastRangeError as exc:
            logger.info("No forecast for %s,%s: %s", lat, lng, exc)
            return WeatherUnavailable("out_of_range")
        except httpx.HTTPStatusError as exc:
            logger.warning("Weather lookup rejected (%s) for %s,%s", exc.response.status_code, lat, lng)
            return WeatherUnavailable("upstream_error")
        except httpx.HTTPError as exc:
            logger.warning("Weather lookup failed for %s,%s: %s", lat, lng, exc)
            return WeatherUnavailable("network_error")
        except Exception as exc:
            logger.warning("Weather payload unusable for %s,%s: %s", lat, lng, exc)
            return WeatherUnavailable("bad_payload")

    def _resolve_provider(self) -> WeatherProvider:
        if self._provider is None:
            self._provider = self._provider_factory()
        return self._provider


def describe_weather(result: WeatherResult) -> str:
    if isinstance(result, WeatherSnapshot):
        text = f"{result.temp_c:.1f}°C"
        if result.description:
            text += f" · {result.description}"
        return text
    return "Weather unavailable"


def weather_to_dict(result: WeatherResult) -> dict:
    if isinstance(result, WeatherSnapshot):
        return {
            "available": True,
            "tempC": result.temp_c,
            "icon": result.icon,
            "description": result.description,
            "observedAt": result.observed_at.isoformat() if result.observed_at else None,
            "label": describe_weather(result),
        }
    return {"available": False, "reason": result.reason, "label": describe_weather(result)}
