"""
weather_client.py
=================
Small wrapper around the Open-Meteo forecast API used by the FetchFeed map
view to show daily weather for a dropped pin.

No API key is required:

    GET https://api.open-meteo.com/v1/forecast
        ?latitude=43.07&longitude=-89.40
        &daily=temperature_2m_max,temperature_2m_min,precipitation_probability_max,weather_code
        &timezone=auto&past_days=3&forecast_days=4

Usage
-----
::

    from weather_client import WeatherClient

    client = WeatherClient()
    forecast = client.get_forecast(43.07, -89.40)
    for row in daily_rows(forecast):
        print(row["date"], row["high"], row["low"])
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

logger = logging.getLogger('fetchfeed.weather')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_BASE_URL = "https://api.open-meteo.com/v1/forecast"
DAILY_FIELDS = (
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "weather_code",
)
_DEFAULT_TIMEOUT = 10  # seconds
_MAX_PAST_DAYS = 92
_MAX_FORECAST_DAYS = 16

# WMO weather interpretation codes -> short label
WEATHER_CODES = {
    0: "Clear sky", 1: "Mainly clear", 2: "Partly cloudy", 3: "Overcast",
    45: "Fog", 48: "Rime fog",
    51: "Light drizzle", 53: "Drizzle", 55: "Dense drizzle",
    61: "Light rain", 63: "Rain", 65: "Heavy rain",
    71: "Light snow", 73: "Snow", 75: "Heavy snow", 77: "Snow grains",
    80: "Rain showers", 81: "Heavy showers", 82: "Violent showers",
    85: "Snow showers", 86: "Heavy snow showers",
    95: "Thunderstorm", 96: "Thunderstorm with hail", 99: "Severe thunderstorm",
}


class WeatherAPIError(Exception):
    """Raised when the forecast API cannot be reached or answers badly."""


def validate_coordinates(latitude, longitude) -> tuple:
    """Return ``(lat, lon)`` as floats or raise :class:`ValueError`."""
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        raise ValueError("latitude and longitude must be numbers")
    if not -90.0 <= lat <= 90.0:
        raise ValueError("latitude must be between -90 and 90")
    if not -180.0 <= lon <= 180.0:
        raise ValueError("longitude must be between -180 and 180")
    return lat, lon


def describe_code(code) -> str:
    """Human label for a WMO weather code."""
    try:
        return WEATHER_CODES.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


def daily_rows(forecast: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Zip the parallel ``daily`` lists into one dict per day.

    Lists of unequal length are truncated to the shortest one.
    """
    daily = forecast.get("daily") or {}
    columns = [daily.get("time") or []] + [daily.get(f) or [] for f in DAILY_FIELDS]
    rows = []
    for date, high, low, precip, code in zip(*columns):
        rows.append({
            "date": date,
            "high": high,
            "low": low,
            "precipitation_probability": precip,
            "weather_code": code,
            "summary": describe_code(code),
        })
    return rows


class WeatherClient:
    """Minimal Open-Meteo forecast client."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = _DEFAULT_TIMEOUT,
        session: requests.Session = None,
    ) -> None:
        """
        Args:
            base_url: Full forecast endpoint URL.
            timeout:  HTTP request timeout in seconds.
            session:  Optional pre-configured :class:`requests.Session`.
        """
        self._base_url = base_url
        self._timeout = timeout
        self._session = session or requests.Session()

    def get_forecast(
        self,
        latitude: float,
        longitude: float,
        past_days: int = 3,
        forecast_days: int = 4,
    ) -> Dict[str, Any]:
        """Fetch daily weather around *latitude*/*longitude*.

        Returns the decoded JSON, which contains::

            {
              "latitude": 43.07, "longitude": -89.4, "timezone": "America/Chicago",
              "daily": {"time": [...], "temperature_2m_max": [...], ...}
            }

        Raises:
            ValueError:      Coordinates or day counts out of range.
            WeatherAPIError: Network failure, non-200 status or bad payload.
        """
        lat, lon = validate_coordinates(latitude, longitude)
        if not 0 <= int(past_days) <= _MAX_PAST_DAYS:
            raise ValueError(f"past_days must be between 0 and {_MAX_PAST_DAYS}")
        if not 1 <= int(forecast_days) <= _MAX_FORECAST_DAYS:
            raise ValueError(f"forecast_days must be between 1 and {_MAX_FORECAST_DAYS}")

        params = {
            "latitude": lat,
            "longitude": lon,
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
            "past_days": int(past_days),
            "forecast_days": int(forecast_days),
        }
        try:
            resp = self._session.get(self._base_url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("Forecast request failed: %s", exc)
            raise WeatherAPIError(f"Forecast request failed: {exc}") from exc

        if resp.status_code != 200:
            raise WeatherAPIError(
                f"Forecast API returned HTTP {resp.status_code}: {resp.text[:200]}"
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise WeatherAPIError("Forecast API returned invalid JSON") from exc
        if not isinstance(data, dict) or "daily" not in data:
            raise WeatherAPIError("Forecast API response is missing daily data")
        logger.debug("Fetched forecast for %.4f,%.4f (%d days)",
                     lat, lon, len(data["daily"].get("time") or []))
        return data
