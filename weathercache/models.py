"""
Reading model.

A Reading is the decoded result of one fetch attempt. Values are passed
through in the upstream's raw units (Kelvin, hPa, %, m/s, metres, mm).
"""
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from .schemas import ApiWeatherResult


def _from_unix(seconds: Optional[int]) -> Optional[datetime]:
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


@dataclass(frozen=True)
class Reading:
    """
    Latest weather reading for a location.

    Attributes:
        is_successful: False for a failure placeholder; check this before
            looking at any of the values.
        measured_at: When the upstream observed/calculated the data.
        fetched_at: When the fetch completed locally.
        is_from_cache: Set by the cache on the copy handed to the caller.
        api_request_made: Set by the cache on the copy handed to the caller.
        error: Message of the fetch error behind a failure placeholder.
    """
    is_successful: bool
    measured_at: Optional[datetime] = None
    fetched_at: Optional[datetime] = None
    is_from_cache: bool = False
    api_request_made: bool = False

    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    temperature_min: Optional[float] = None
    temperature_max: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None
    sea_level_pressure: Optional[float] = None
    ground_level_pressure: Optional[float] = None
    visibility: Optional[int] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    wind_gust: Optional[float] = None
    cloudiness: Optional[int] = None
    rain_1h: Optional[float] = None
    rain_3h: Optional[float] = None
    snow_1h: Optional[float] = None
    snow_3h: Optional[float] = None
    condition: Optional[str] = None
    condition_description: Optional[str] = None
    condition_icon: Optional[str] = None
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None
    timezone_offset: Optional[int] = None
    city_id: Optional[int] = None
    city_name: Optional[str] = None
    country_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    error: Optional[str] = None

    @classmethod
    def from_api_result(cls, result: ApiWeatherResult) -> "Reading":
        """Build a successful Reading from a decoded upstream payload."""
        weather = result.weather[0] if result.weather else None
        wind = result.wind
        rain = result.rain
        snow = result.snow
        sys = result.sys
        return cls(
            is_successful=True,
            measured_at=_from_unix(result.dt),
            temperature=result.main.temp,
            feels_like=result.main.feels_like,
            temperature_min=result.main.temp_min,
            temperature_max=result.main.temp_max,
            pressure=result.main.pressure,
            humidity=result.main.humidity,
            sea_level_pressure=result.main.sea_level,
            ground_level_pressure=result.main.grnd_level,
            visibility=result.visibility,
            wind_speed=wind.speed if wind else None,
            wind_direction=wind.deg if wind else None,
            wind_gust=wind.gust if wind else None,
            cloudiness=result.clouds.all if result.clouds else None,
            rain_1h=rain.one_hour if rain else None,
            rain_3h=rain.three_hours if rain else None,
            snow_1h=snow.one_hour if snow else None,
            snow_3h=snow.three_hours if snow else None,
            condition=weather.main if weather else None,
            condition_description=weather.description if weather else None,
            condition_icon=weather.icon if weather else None,
            sunrise=_from_unix(sys.sunrise) if sys else None,
            sunset=_from_unix(sys.sunset) if sys else None,
            timezone_offset=result.timezone,
            city_id=result.id,
            city_name=result.name,
            country_code=sys.country if sys else None,
            latitude=result.coord.lat if result.coord else None,
            longitude=result.coord.lon if result.coord else None,
        )

    @classmethod
    def failure(cls, error: Exception, fetched_at: Optional[datetime] = None) -> "Reading":
        """Placeholder returned when no usable data is available."""
        return cls(
            is_successful=False,
            fetched_at=fetched_at,
            api_request_made=True,
            error=str(error),
        )

    def with_flags(self, is_from_cache: bool, api_request_made: bool) -> "Reading":
        return replace(self, is_from_cache=is_from_cache, api_request_made=api_request_made)

    def stamped(self, fetched_at: datetime) -> "Reading":
        return replace(self, fetched_at=fetched_at)
