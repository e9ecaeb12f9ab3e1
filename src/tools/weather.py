"""LangChain tools for place lookup and current weather.

Each tool returns a JSON-serialisable dict.  Failures are raised, not
formatted: the dispatcher turns them into an error payload for the model.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.tools import tool

from src.services.weather_client import get_weather_client

logger = logging.getLogger(__name__)

# WMO weather interpretation codes (subset used by Open-Meteo)
_WMO_CODES = {
    0: "clear sky",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "fog",
    48: "depositing rime fog",
    51: "light drizzle",
    53: "moderate drizzle",
    55: "dense drizzle",
    61: "slight rain",
    63: "moderate rain",
    65: "heavy rain",
    71: "slight snow",
    73: "moderate snow",
    75: "heavy snow",
    80: "rain showers",
    81: "heavy rain showers",
    82: "violent rain showers",
    95: "thunderstorm",
    96: "thunderstorm with hail",
    99: "thunderstorm with heavy hail",
}


def describe_weather_code(code: int | None) -> str:
    if code is None:
        return "unknown"
    return _WMO_CODES.get(int(code), f"weather code {code}")


# ── Tool 1: Find a city ─────────────────────────────────────────────


@tool
async def find_city(city: str) -> dict[str, Any]:
    """Look up a city and return its country, latitude, longitude and timezone.

    Args:
        city: The city name, optionally with a country (e.g. "Warsaw").
    """
    return await get_weather_client().find_city(city)


# ── Tool 2: Current weather ─────────────────────────────────────────


@tool
async def get_weather(city: str) -> dict[str, Any]:
    """Get the current weather (temperature, wind, humidity, conditions) for a city.

    Args:
        city: The city name (e.g. "Warsaw").
    """
    client = get_weather_client()
    place = await client.find_city(city)
    current = await client.current_weather(place["latitude"], place["longitude"])

    temperature = current["temperature_2m"]
    logger.debug("Weather for %s: %s", place["name"], temperature)
    return {
        "city": place["name"],
        "country": place["country"],
        "time": current.get("time"),
        "temperature": f"{temperature['value']}{temperature['unit']}",
        "feels_like": "{value}{unit}".format(**current["apparent_temperature"]),
        "humidity": "{value}{unit}".format(**current["relative_humidity_2m"]),
        "wind_speed": "{value} {unit}".format(**current["wind_speed_10m"]),
        "conditions": describe_weather_code(current["weather_code"]["value"]),
    }
