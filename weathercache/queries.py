"""
Location query keys.

Each variant normalizes its fields at construction so that equivalent
queries compare and hash identically. They are used directly as keys by
the cache store and the key lock manager.
"""
from dataclasses import dataclass
from typing import Union

from .errors import CallerError, UnsupportedQueryError


def _normalize(value: str) -> str:
    return value.strip().lower()


@dataclass(frozen=True)
class Location:
    """A latitude/longitude pair."""
    latitude: float
    longitude: float

    def __post_init__(self):
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))


@dataclass(frozen=True)
class ZipCode:
    """A postal code within a country."""
    zip: str
    country_code: str

    def __post_init__(self):
        if self.zip is None:
            raise CallerError("zip must not be None")
        if self.country_code is None:
            raise CallerError("country_code must not be None")
        object.__setattr__(self, "zip", _normalize(self.zip))
        object.__setattr__(self, "country_code", _normalize(self.country_code))


@dataclass(frozen=True)
class City:
    """A place name, optionally qualified by country."""
    city_name: str
    country_code: str = ""

    def __post_init__(self):
        if self.city_name is None:
            raise CallerError("city_name must not be None")
        object.__setattr__(self, "city_name", _normalize(self.city_name))
        object.__setattr__(self, "country_code", _normalize(self.country_code or ""))


LocationQuery = Union[Location, ZipCode, City]

SUPPORTED_QUERY_TYPES = (Location, ZipCode, City)


def ensure_supported(query: object) -> LocationQuery:
    """Return the query unchanged, or raise UnsupportedQueryError."""
    if not isinstance(query, SUPPORTED_QUERY_TYPES):
        raise UnsupportedQueryError(query)
    return query


def log_file_name(query: LocationQuery) -> str:
    """
    File name used when persisting the last raw response for a query.

    Decimal points in coordinates are replaced with underscores, e.g.
    Location(48.8566, 2.3522) -> "48_8566-2_3522.json".
    """
    if isinstance(query, Location):
        lat = repr(query.latitude).replace(".", "_")
        lon = repr(query.longitude).replace(".", "_")
        return f"{lat}-{lon}.json"
    if isinstance(query, ZipCode):
        return f"{query.zip}-{query.country_code}.json"
    if isinstance(query, City):
        return f"{query.city_name}-{query.country_code}.json"
    raise UnsupportedQueryError(query)
