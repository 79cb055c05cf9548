from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Union


@dataclass(frozen=True)
class WeatherSnapshot:
    temp_c: float
    icon: Optional[str] = None
    description: Optional[str] = None
    observed_at: Optional[datetime] = None
    source: str = "openweather"


@dataclass(frozen=True)
class WeatherUnavailable:
    reason: str = "unavailable"


WeatherResult = Union[WeatherSnapshot, WeatherUnavailable]


class ForecastRangeError(ValueError):
    """The requested time is not covered by the provider's forecast."""


class WeatherProvider(Protocol):
    """Contract for point-in-time weather providers.

    Providers may raise on any failure; callers are expected to degrade.
    """

    def fetch_point(
        self,
        *,
        lat: float,
        lng: float,
        when: Optional[datetime] = None,
    ) -> WeatherSnapshot:
        raise NotImplementedError
