"""Tests for the Open-Meteo client and the weather tools."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.services.cache import LRUCache
from src.services.weather_client import (
    INITIAL_BACKOFF_SECONDS,
    MAX_RETRIES,
    CityNotFoundError,
    WeatherAPIError,
    WeatherClient,
)
from src.tools.weather import describe_weather_code, find_city, get_weather

WARSAW_GEOCODE = {
    "results": [
        {
            "name": "Warsaw",
            "country": "Poland",
            "latitude": 52.22977,
            "longitude": 21.01178,
            "timezone": "Europe/Warsaw",
        }
    ]
}

WARSAW_FORECAST = {
    "current": {
        "time": "2026-10-17T12:00",
        "temperature_2m": 15.0,
        "apparent_temperature": 13.4,
        "relative_humidity_2m": 71,
        "wind_speed_10m": 11.2,
        "weather_code": 3,
    },
    "current_units": {
        "temperature_2m": "°C",
        "apparent_temperature": "°C",
        "relative_humidity_2m": "%",
        "wind_speed_10m": "km/h",
        "weather_code": "wmo code",
    },
}


# ── WeatherClient ────────────────────────────────────────────────────


class TestFindCity:
    def test_returns_first_match(self, mock_http_response):
        client = WeatherClient()
        with patch.object(
            client._client, "get", new=AsyncMock(return_value=mock_http_response(WARSAW_GEOCODE)),
        ):
            city = asyncio.run(client.find_city("Warsaw"))
        assert city["country"] == "Poland"
        assert city["latitude"] == pytest.approx(52.22977)

    def test_caches_lookups_case_insensitively(self, mock_http_response):
        client = WeatherClient(cache=LRUCache())
        get = AsyncMock(return_value=mock_http_response(WARSAW_GEOCODE))
        with patch.object(client._client, "get", new=get):
            asyncio.run(client.find_city("Warsaw"))
            asyncio.run(client.find_city("  warsaw "))
        assert get.call_count == 1

    def test_no_results_raises(self, mock_http_response):
        client = WeatherClient()
        with patch.object(
            client._client, "get", new=AsyncMock(return_value=mock_http_response({})),
        ):
            with pytest.raises(CityNotFoundError, match="Atlantis"):
                asyncio.run(client.find_city("Atlantis"))


class TestCurrentWeather:
    def test_pairs_values_with_units(self, mock_http_response):
        client = WeatherClient()
        get = AsyncMock(return_value=mock_http_response(WARSAW_FORECAST))
        with patch.object(client._client, "get", new=get):
            current = asyncio.run(client.current_weather(52.2, 21.0))

        assert current["temperature_2m"] == {"value": 15.0, "unit": "°C"}
        assert current["time"] == "2026-10-17T12:00"
        assert get.call_args[1]["params"]["latitude"] == 52.2


class TestRetryLogic:
    @patch("src.services.weather_client.asyncio.sleep", new_callable=AsyncMock)
    def test_retries_on_timeout(self, mock_sleep, mock_http_response):
        client = WeatherClient()
        get = AsyncMock(side_effect=[
            httpx.ConnectTimeout("timeout"),
            mock_http_response(WARSAW_GEOCODE),
        ])
        with patch.object(client._client, "get", new=get):
            city = asyncio.run(client.find_city("Warsaw"))
        assert city["name"] == "Warsaw"
        mock_sleep.assert_awaited_once_with(INITIAL_BACKOFF_SECONDS)

    @patch("src.services.weather_client.asyncio.sleep", new_callable=AsyncMock)
    def test_gives_up_after_max_retries(self, mock_sleep, mock_http_response):
        client = WeatherClient()
        get = AsyncMock(return_value=mock_http_response({"reason": "down"}, 502))
        with patch.object(client._client, "get", new=get):
            with pytest.raises(WeatherAPIError, match="failed after"):
                asyncio.run(client.find_city("Warsaw"))
        assert get.call_count == MAX_RETRIES
        assert mock_sleep.await_count == MAX_RETRIES - 1

    @patch("src.services.weather_client.asyncio.sleep", new_callable=AsyncMock)
    def test_client_errors_are_not_retried(self, mock_sleep, mock_http_response):
        client = WeatherClient()
        get = AsyncMock(return_value=mock_http_response({"reason": "bad"}, 400))
        with patch.object(client._client, "get", new=get):
            with pytest.raises(WeatherAPIError) as exc_info:
                asyncio.run(client.find_city("Warsaw"))
        assert exc_info.value.status_code == 400
        assert get.call_count == 1
        mock_sleep.assert_not_awaited()


# ── Tools ────────────────────────────────────────────────────────────


def _fake_client() -> MagicMock:
    client = MagicMock()
    client.find_city = AsyncMock(return_value={
        "name": "Warsaw", "country": "Poland",
        "latitude": 52.2, "longitude": 21.0, "timezone": "Europe/Warsaw",
    })
    client.current_weather = AsyncMock(return_value={
        field: {"value": WARSAW_FORECAST["current"][field],
                "unit": WARSAW_FORECAST["current_units"][field]}
        for field in WARSAW_FORECAST["current_units"]
    } | {"time": "2026-10-17T12:00"})
    return client


class TestWeatherTools:
    @patch("src.tools.weather.get_weather_client")
    def test_get_weather_summarises_conditions(self, mock_get_client):
        mock_get_client.return_value = _fake_client()
        result = asyncio.run(get_weather.ainvoke({"city": "Warsaw"}))

        assert result["city"] == "Warsaw"
        assert result["temperature"] == "15.0°C"
        assert result["wind_speed"] == "11.2 km/h"
        assert result["conditions"] == "overcast"

    @patch("src.tools.weather.get_weather_client")
    def test_find_city_returns_coordinates(self, mock_get_client):
        mock_get_client.return_value = _fake_client()
        result = asyncio.run(find_city.ainvoke({"city": "Warsaw"}))
        assert result["latitude"] == 52.2

    @patch("src.tools.weather.get_weather_client")
    def test_errors_propagate_to_dispatcher(self, mock_get_client):
        client = _fake_client()
        client.find_city.side_effect = CityNotFoundError("No place called 'Nowhere' was found.")
        mock_get_client.return_value = client
        with pytest.raises(CityNotFoundError):
            asyncio.run(get_weather.ainvoke({"city": "Nowhere"}))

    def test_describe_weather_code(self):
        assert describe_weather_code(0) == "clear sky"
        assert describe_weather_code(None) == "unknown"
        assert describe_weather_code(42) == "weather code 42"
