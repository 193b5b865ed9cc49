from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from ..errors import FetchError

name = "weather"
title = "Weather"

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

# WMO weather interpretation codes
WEATHER_CODES = {
    0: "Clear Sky",
    1: "Mainly Clear",
    2: "Partly Cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Rime Fog",
    51: "Drizzle",
    53: "Drizzle",
    55: "Drizzle",
    56: "Drizzle",
    57: "Drizzle",
    61: "Rain",
    63: "Moderate Rain",
    65: "Heavy Rain",
    66: "Freezing Rain",
    67: "Freezing Rain",
    71: "Snow",
    73: "Moderate Snow",
    75: "Heavy Snow",
    77: "Snow Grains",
    80: "Rain",
    81: "Moderate Rain",
    82: "Heavy Rain",
    85: "Snow",
    86: "Snow",
    95: "Thunderstorm",
    96: "Thunderstorm",
    99: "Thunderstorm",
}

TIME_LABELS_12H = ["2am", "4am", "6am", "8am", "10am", "12pm", "2pm", "4pm", "6pm", "8pm", "10pm", "12am"]
TIME_LABELS_24H = [f"{h:02d}:00" for h in range(2, 24, 2)] + ["00:00"]

COUNTRY_ABBREVIATIONS = {
    "US": "United States",
    "USA": "United States",
    "UK": "United Kingdom",
}

PRECIPITATION_THRESHOLD = 75


def round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def _expand_country(name: str) -> str:
    return COUNTRY_ABBREVIATIONS.get(name.strip(), name)


def parse_place_name(place: str) -> tuple[str, str]:
    """Split ``City[, Area], Country`` into a search string and an area filter."""
    parts = [p.strip() for p in place.split(",")]
    if len(parts) == 1:
        return place, ""
    if len(parts) == 2:
        return f"{parts[0]}, {_expand_country(parts[1])}", ""
    return f"{parts[0]}, {_expand_country(parts[2])}", parts[1].lower()


async def geocode(client, place_name: str) -> dict[str, Any]:
    location, area = parse_place_name(place_name)
    js = await client.fetch_json(
        GEOCODING_URL,
        params={"name": location, "count": 20, "language": "en", "format": "json"},
    )
    results = js.get("results") or []
    if not results:
        raise FetchError(f"No places found for: {place_name}", url=GEOCODING_URL)
    if not area:
        return results[0]
    for place in results:
        if str(place.get("admin1", "")).lower() == area:
            return place
    raise FetchError(f"No place found for {location} in {area}", url=GEOCODING_URL)


async def fetch_forecast(client, place: dict[str, Any], units: str) -> dict[str, Any]:
    params = {
        "latitude": place["latitude"],
        "longitude": place["longitude"],
        "timeformat": "unixtime",
        "timezone": place.get("timezone", "auto"),
        "forecast_days": 1,
        "current": "temperature_2m,apparent_temperature,weather_code",
        "hourly": "temperature_2m,precipitation_probability",
        "daily": "sunrise,sunset",
        "temperature_unit": "fahrenheit" if units == "imperial" else "celsius",
    }
    return await client.fetch_json(FORECAST_URL, params=params)


def build_columns(
    hourly_temps: list[float],
    hourly_precip: list[float],
    current_temp: float,
    current_column: int,
) -> list[dict[str, Any]]:
    """Bucket 24 hourly samples into 12 two-hour columns.

    Each column is the mean of its two hours, except ``current_column`` which
    shows the live reading. ``scale`` is the column's position between the
    day's min and max, used for bar heights.
    """
    if len(hourly_temps) != 24:
        return []

    temps: list[int] = []
    precip: list[bool] = []
    for i in range(0, 24, 2):
        if i // 2 == current_column:
            temps.append(round_half_up(current_temp))
        else:
            temps.append(round_half_up((hourly_temps[i] + hourly_temps[i + 1]) / 2))
        pair = hourly_precip[i:i + 2]
        precip.append(len(pair) == 2 and None not in pair and sum(pair) / 2 > PRECIPITATION_THRESHOLD)

    lo, hi = min(temps), max(temps)
    span = hi - lo
    return [
        {
            "temperature": t,
            "scale": (t - lo) / span if span > 0 else 1,
            "has_precipitation": p,
        }
        for t, p in zip(temps, precip)
    ]


def _utc_hour(epoch: float) -> int:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).hour


def shape(js: dict[str, Any], place: dict[str, Any], cfg, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    current = js.get("current", {})
    hourly = js.get("hourly", {})
    daily = js.get("daily", {})

    # Static build: columns are based on UTC, the page adjusts for local time.
    current_column = now.astimezone(timezone.utc).hour // 2
    sunrise = (daily.get("sunrise") or [None])[0]
    sunset = (daily.get("sunset") or [None])[0]
    sunrise_column = _utc_hour(sunrise) // 2 if sunrise is not None else None
    sunset_column = max(0, (_utc_hour(sunset) - 1) // 2) if sunset is not None else None

    location = place.get("name", "")
    if cfg.show_area_name and place.get("admin1"):
        location = f'{place["name"]}, {place["admin1"]}'

    code = current.get("weather_code")
    return {
        "location": location,
        "area_name": place.get("admin1"),
        "temperature": round_half_up(current.get("temperature_2m", 0)),
        "apparent_temperature": round_half_up(current.get("apparent_temperature", 0)),
        "weather_code": code,
        "condition": WEATHER_CODES.get(code, "Unknown"),
        "current_column": current_column,
        "sunrise_column": sunrise_column,
        "sunset_column": sunset_column,
        "columns": build_columns(
            hourly.get("temperature_2m") or [],
            hourly.get("precipitation_probability") or [],
            current.get("temperature_2m", 0),
            current_column,
        ),
        "time_labels": TIME_LABELS_24H if cfg.hour_format == "24h" else TIME_LABELS_12H,
    }


async def collect(cfg, client, registry=None) -> dict[str, Any]:
    logger.info("Fetching weather for: %s", cfg.location)
    place = await geocode(client, cfg.location)
    logger.info(
        "Found place: %s, %s, %s (%s, %s)",
        place.get("name"), place.get("admin1", ""), place.get("country", ""),
        place.get("latitude"), place.get("longitude"),
    )
    js = await fetch_forecast(client, place, cfg.units)
    data = shape(js, place, cfg)
    logger.info("Fetched weather: %s°, %s", data["temperature"], data["condition"])
    return data
