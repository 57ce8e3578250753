"""
Weather Cache - FastAPI service exposing cached OpenWeatherMap readings
"""
import logging

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse

from config.settings import settings
from weathercache import __version__
from weathercache.cache import WeatherCache, get_weather_cache
from weathercache.models import Reading
from weathercache.queries import City, Location, LocationQuery, ZipCode
from weathercache.schemas import ReadingResponse

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("weathercache.main")

APP_NAME = "Weather Cache"

app = FastAPI(
    title=APP_NAME,
    description="Latest OpenWeatherMap readings with per-location caching",
    version=__version__,
)


def _reading_response(reading: Reading) -> JSONResponse:
    """200 for real (possibly stale) data, 503 for a failure placeholder."""
    body = ReadingResponse.model_validate(reading).model_dump(mode="json")
    return JSONResponse(content=body, status_code=200 if reading.is_successful else 503)


async def _get(cache: WeatherCache, query: LocationQuery) -> JSONResponse:
    reading = await cache.get_async(query)
    if not reading.is_successful:
        logger.info(f"No reading available for {query!r}: {reading.error}")
    return _reading_response(reading)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "source": "openweathermap"}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": __version__,
        "full": f"{APP_NAME} {__version__}",
    }


@app.get("/cache/stats")
def cache_stats(cache: WeatherCache = Depends(get_weather_cache)):
    """Get cache statistics."""
    return cache.get_stats()


@app.get("/readings/location", response_model=ReadingResponse)
async def reading_for_location(
    lat: float = Query(..., description="Latitude"),
    lon: float = Query(..., description="Longitude"),
    cache: WeatherCache = Depends(get_weather_cache),
):
    """Latest reading for a latitude/longitude pair."""
    return await _get(cache, Location(lat, lon))


@app.get("/readings/zip", response_model=ReadingResponse)
async def reading_for_zip(
    zip: str = Query(..., min_length=1, description="Postal code"),
    country: str = Query(..., min_length=2, description="ISO 3166 country code"),
    cache: WeatherCache = Depends(get_weather_cache),
):
    """Latest reading for a postal code."""
    return await _get(cache, ZipCode(zip, country))


@app.get("/readings/city", response_model=ReadingResponse)
async def reading_for_city(
    name: str = Query(..., min_length=1, description="City name"),
    country: str = Query("", description="ISO 3166 country code"),
    cache: WeatherCache = Depends(get_weather_cache),
):
    """Latest reading for a city name."""
    return await _get(cache, City(name, country))
