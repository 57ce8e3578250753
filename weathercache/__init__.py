"""
weathercache - latest weather readings per location with per-key
single-flight fetching, a hard cache period and a resiliency window.
"""
from .cache import ReconciliationMode, WeatherCache, get_weather_cache
from .errors import (
    CallerError,
    FetchError,
    InvalidConfigurationError,
    UnsupportedQueryError,
    WeatherCacheError,
)
from .models import Reading
from .queries import City, Location, LocationQuery, ZipCode

__version__ = "0.1.0"

__all__ = [
    "WeatherCache",
    "get_weather_cache",
    "ReconciliationMode",
    "Reading",
    "Location",
    "ZipCode",
    "City",
    "LocationQuery",
    "WeatherCacheError",
    "CallerError",
    "UnsupportedQueryError",
    "InvalidConfigurationError",
    "FetchError",
]
