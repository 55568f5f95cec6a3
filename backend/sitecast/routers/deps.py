import httpx

from sitecast.config import settings
from sitecast.services.owm_client import OpenWeatherClient


async def get_weather_client():
    async with httpx.AsyncClient(timeout=settings.weather_request_timeout) as http:
        yield OpenWeatherClient(http)
