from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from wingman.infra.weather.openweather_client import OpenWeatherClient
from wingman.providers.weather.base import WeatherSnapshot, WeatherUnavailable
from wingman.providers.weather.openweather import OpenWeatherProvider
from wingman.services.weather_enrichment import (
    WeatherEnrichmentService,
    describe_weather,
    weather_to_dict,
)

CURRENT_PAYLOAD = {
    "dt": 1772359200,
    "main": {"temp": 21.46},
    "weather": [{"icon": "01d", "description": "clear sky"}],
}


def forecast_payload():
    def entry(ts, temp, description):
        return {"dt": ts, "main": {"temp": temp}, "weather": [{"icon": "02d", "description": description}]}

    base = int(datetime(2026, 3, 1, 12, tzinfo=timezone.utc).timestamp())
    return {
        "list": [
            entry(base, 18.0, "few clouds"),
            entry(base + 3 * 3600, 19.5, "scattered clouds"),
            entry(base + 6 * 3600, 16.0, "light rain"),
        ]
    }


def service_for(handler, calls=None) -> WeatherEnrichmentService:
    def recording(request: httpx.Request):
        if calls is not None:
            calls.append(request)
        return handler(request)

    transport = httpx.MockTransport(recording)
    return WeatherEnrichmentService(
        provider_factory=lambda: OpenWeatherProvider(OpenWeatherClient(api_key="test-key", transport=transport))
    )


def test_current_weather_without_timestamp():
    calls = []
    service = service_for(lambda request: httpx.Response(200, json=CURRENT_PAYLOAD), calls)
    result = service.fetch(36.8, 10.18)
    assert isinstance(result, WeatherSnapshot)
    assert result.temp_c == pytest.approx(21.46)
    assert result.description == "clear sky"
    assert calls[0].url.path.endswith("/weather")
    assert calls[0].url.params["units"] == "metric"
    assert calls[0].url.params["appid"] == "test-key"
    assert describe_weather(result) == "21.5°C · clear sky"


def test_forecast_entry_closest_to_requested_time():
    calls = []
    service = service_for(lambda request: httpx.Response(200, json=forecast_payload()), calls)
    result = service.fetch(36.8, 10.18, "2026-03-01T16:00:00Z")
    assert calls[0].url.path.endswith("/forecast")
    assert result.description == "scattered clouds"
    assert result.observed_at == datetime(2026, 3, 1, 15, tzinfo=timezone.utc)


@pytest.mark.parametrize("when", ["2026-04-30T12:00:00Z", "2026-02-27T12:00:00Z", "2026-03-01T21:30:00Z"])
def test_time_outside_forecast_window_degrades(when):
    service = service_for(lambda request: httpx.Response(200, json=forecast_payload()))
    assert service.fetch(36.8, 10.18, when) == WeatherUnavailable("out_of_range")


def test_forecast_edges_use_nearest_entry():
    service = service_for(lambda request: httpx.Response(200, json=forecast_payload()))
    assert service.fetch(36.8, 10.18, "2026-03-01T10:00:00Z").description == "few clouds"
    assert service.fetch(36.8, 10.18, "2026-03-01T20:00:00Z").description == "light rain"


def test_missing_api_key_degrades(monkeypatch):
    monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
    result = WeatherEnrichmentService().fetch(36.8, 10.18)
    assert result == WeatherUnavailable("missing_api_key")
    assert describe_weather(result) == "Weather unavailable"


def test_api_key_is_read_from_settings(monkeypatch):
    monkeypatch.setenv("OPENWEATHER_API_KEY", "env-key")
    assert OpenWeatherClient().api_key == "env-key"


@pytest.mark.parametrize(
    "handler,reason",
    [
        (lambda request: httpx.Response(401, json={"message": "Invalid API key"}), "upstream_error"),
        (lambda request: httpx.Response(500), "upstream_error"),
        (lambda request: httpx.Response(200, json={"weather": []}), "bad_payload"),
        (lambda request: httpx.Response(200, text="<html>"), "bad_payload"),
    ],
)
def test_upstream_failures_degrade(handler, reason):
    result = service_for(handler).fetch(36.8, 10.18)
    assert result == WeatherUnavailable(reason)


def test_network_failure_degrades():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert service_for(handler).fetch(36.8, 10.18) == WeatherUnavailable("network_error")


def test_invalid_inputs_never_reach_provider():
    calls = []
    service = service_for(lambda request: httpx.Response(200, json=CURRENT_PAYLOAD), calls)
    assert service.fetch(120, 10) == WeatherUnavailable("invalid_coordinates")
    assert service.fetch(36.8, 10.18, "tomorrow-ish") == WeatherUnavailable("invalid_timestamp")
    assert calls == []


def test_weather_to_dict_shapes():
    snapshot = WeatherSnapshot(temp_c=20.0, icon="01d", description="clear sky")
    assert weather_to_dict(snapshot)["available"] is True
    assert weather_to_dict(snapshot)["tempC"] == 20.0
    assert weather_to_dict(WeatherUnavailable("network_error")) == {
        "available": False,
        "reason": "network_error",
        "label": "Weather unavailable",
    }
