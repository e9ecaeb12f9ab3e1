"""Async HTTP client for the Open-Meteo geocoding and forecast APIs, with
retry logic, timeout handling and an in-memory LRU cache for geocoding.

Open-Meteo docs: https://open-meteo.com/en/docs
No API key is required.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

import httpx

from src.config import FORECAST_BASE_URL, GEOCODING_BASE_URL
from src.services.cache import LRUCache

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 0.5
REQUEST_TIMEOUT_SECONDS = 10.0

# ── Cache key prefixes ──────────────────────────────────────────────
_CK_CITY = "city:"

CURRENT_FIELDS = (
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "wind_speed_10m",
    "weather_code",
)


class WeatherAPIError(Exception):
    """Raised when an Open-Meteo call fails after all retries."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class CityNotFoundError(WeatherAPIError):
    """Raised when geocoding returns no match."""


class WeatherClient:
    """Looks up places and their current conditions.

    City lookups never change, so they are cached; forecasts are always
    fetched fresh.
    """

    def __init__(
        self,
        *,
        geocoding_url: str | None = None,
        forecast_url: str | None = None,
        cache: LRUCache | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._geocoding_url = (geocoding_url or GEOCODING_BASE_URL).rstrip("/")
        self._forecast_url = (forecast_url or FORECAST_BASE_URL).rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)
        self._cache = cache or LRUCache(max_bytes=1024 * 1024)

    # ── Internal helpers ─────────────────────────────────────────────

    async def _get(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET with exponential-backoff retries on timeouts and 5xx."""
        last_error: Exception | None = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.get(url, params=params)
                if response.status_code >= 500:
                    raise WeatherAPIError(
                        f"Server error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                if response.status_code >= 400:
                    raise WeatherAPIError(
                        f"Client error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                return response.json()

            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_error = exc
                logger.warning(
                    "Open-Meteo attempt %d/%d failed (%s). Retrying…",
                    attempt, MAX_RETRIES, type(exc).__name__,
                )
            except WeatherAPIError as exc:
                if exc.status_code and exc.status_code >= 500:
                    last_error = exc
                    logger.warning(
                        "Open-Meteo server error on attempt %d/%d. Retrying…",
                        attempt, MAX_RETRIES,
                    )
                else:
                    raise

            if attempt < MAX_RETRIES:
                await asyncio.sleep(INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)))

        raise WeatherAPIError(
            f"Open-Meteo request failed after {MAX_RETRIES} retries: {last_error}"
        )

    # ── Public API methods ───────────────────────────────────────────

    async def find_city(self, name: str) -> dict[str, Any]:
        """Resolve a place name to coordinates (cached).

        Returns:
            ``{"name", "country", "latitude", "longitude", "timezone"}``.

        Raises:
            CityNotFoundError: nothing matched *name*.
        """
        key = f"{_CK_CITY}{name.strip().lower()}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        data = await self._get(
            f"{self._geocoding_url}/search",
            {"name": name.strip(), "count": 1, "language": "en", "format": "json"},
        )
        results = data.get("results") or []
        if not results:
            raise CityNotFoundError(f"No place called {name!r} was found.")

        top = results[0]
        city = {
            "name": top.get("name", name),
            "country": top.get("country", ""),
            "latitude": top["latitude"],
            "longitude": top["longitude"],
            "timezone": top.get("timezone", "UTC"),
        }
        self._cache.put(key, city)
        return city

    async def current_weather(self, latitude: float, longitude: float) -> dict[str, Any]:
        """Current conditions at a coordinate, with units.  **Not cached**."""
        data = await self._get(
            f"{self._forecast_url}/forecast",
            {
                "latitude": latitude,
                "longitude": longitude,
                "current": ",".join(CURRENT_FIELDS),
                "timezone": "auto",
            },
        )
        current = data.get("current") or {}
        units = data.get("current_units") or {}
        return {
            field: {"value": current.get(field), "unit": units.get(field, "")}
            for field in CURRENT_FIELDS
        } | {"time": current.get("time")}

    async def aclose(self) -> None:
        await self._client.aclose()


# ── Module-level singleton (thread-safe) ────────────────────────────
_client: WeatherClient | None = None
_client_lock = threading.Lock()


def get_weather_client() -> WeatherClient:
    """Return a module-level WeatherClient singleton."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = WeatherClient()
    return _client
