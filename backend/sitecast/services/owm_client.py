"""OpenWeatherMap 5 day / 3 hour forecast client.

The API returns up to 40 points spaced three hours apart. They are grouped
by the site's local calendar day into one DailyWeather summary each:
min/max temperature, mean humidity and wind, and summed rain + snow.
"""

import logging
import math
from datetime import date, datetime, timezone

import httpx

from sitecast.config import settings
from sitecast.errors import WeatherServiceError
from sitecast.schemas.weather import DailyWeather

logger = logging.getLogger(__name__)

POINTS_PER_DAY = 8


class OpenWeatherClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str | None = None,
        base_url: str | None = None,
    ):
        self.http = http
        self.api_key = settings.owm_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.owm_base_url).rstrip("/")

    async def get_forecast(self, lat: float, lon: float, days: int = 7) -> list[DailyWeather]:
        """Fetch the forecast for a location and summarize it per day."""
        if not self.api_key:
            raise WeatherServiceError("Weather API key is not configured")

        days = max(1, min(days, settings.forecast_days))
        params = {
            "lat": lat,
            "lon": lon,
            "appid": self.api_key,
            "units": "imperial",
            "cnt": days * POINTS_PER_DAY,
        }
        try:
            resp = await self.http.get(f"{self.base_url}/forecast", params=params)
        except httpx.HTTPError as e:
            logger.error("Weather forecast request failed for %.4f,%.4f: %s", lat, lon, e)
            raise WeatherServiceError(f"Weather API error: {e}") from e

        if resp.is_error:
            logger.error("Weather API returned %d for %.4f,%.4f", resp.status_code, lat, lon)
            raise WeatherServiceError(f"Weather API error: {resp.reason_phrase or resp.status_code}")

        return aggregate_daily(resp.json())


def aggregate_daily(payload: dict) -> list[DailyWeather]:
    """Group 3-hour forecast points into daily summaries, in forecast order."""
    offset = (payload.get("city") or {}).get("timezone", 0) or 0

    by_day: dict[date, list[dict]] = {}
    for point in payload.get("list", []):
        local = datetime.fromtimestamp(point["dt"] + offset, tz=timezone.utc)
        by_day.setdefault(local.date(), []).append(point)

    daily = []
    for day, points in by_day.items():
        temps = [p["main"]["temp"] for p in points]
        humidity = [p["main"].get("humidity", 0) for p in points]
        winds = [(p.get("wind") or {}).get("speed", 0) for p in points]
        precip_mm = sum(_volume_3h(p.get("rain")) + _volume_3h(p.get("snow")) for p in points)
        first = (points[0].get("weather") or [{}])[0]

        daily.append(DailyWeather(
            date=day,
            temperature_min=min(temps),
            temperature_max=max(temps),
            humidity=_round_half_up(sum(humidity) / len(humidity)),
            wind_speed=_round_half_up(sum(winds) / len(winds)),
            precipitation=round(precip_mm / 25.4, 2),
            conditions=first.get("main", ""),
            description=first.get("description", ""),
        ))
    return daily


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _volume_3h(obj: dict | None) -> float:
    # OWM reports rain/snow volume in mm even with units=imperial
    if not isinstance(obj, dict):
        return 0.0
    return obj.get("3h", 0) or 0.0
