"""
Pydantic schemas for the upstream payload and the HTTP service responses
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ===== UPSTREAM PAYLOAD (current weather) =====

class ApiCoord(BaseModel):
    lon: float
    lat: float


class ApiWeather(BaseModel):
    id: Optional[int] = None
    main: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class ApiMain(BaseModel):
    temp: float
    feels_like: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None
    sea_level: Optional[float] = None
    grnd_level: Optional[float] = None


class ApiWind(BaseModel):
    speed: Optional[float] = None
    deg: Optional[float] = None
    gust: Optional[float] = None


class ApiClouds(BaseModel):
    all: Optional[int] = None


class ApiVolume(BaseModel):
    """Precipitation volume in mm for the last hour / three hours."""
    model_config = ConfigDict(populate_by_name=True)

    one_hour: Optional[float] = Field(default=None, alias="1h")
    three_hours: Optional[float] = Field(default=None, alias="3h")


class ApiSys(BaseModel):
    type: Optional[int] = None
    id: Optional[int] = None
    message: Optional[float] = None
    country: Optional[str] = None
    sunrise: Optional[int] = None
    sunset: Optional[int] = None


class ApiWeatherResult(BaseModel):
    """Body of a successful current-weather response."""
    coord: Optional[ApiCoord] = None
    weather: List[ApiWeather] = []
    base: Optional[str] = None
    main: ApiMain
    visibility: Optional[int] = None
    wind: Optional[ApiWind] = None
    clouds: Optional[ApiClouds] = None
    rain: Optional[ApiVolume] = None
    snow: Optional[ApiVolume] = None
    dt: int  # Unix seconds, when the data was calculated upstream
    sys: Optional[ApiSys] = None
    timezone: Optional[int] = None
    id: Optional[int] = None
    name: Optional[str] = None
    cod: Optional[Union[int, str]] = None


class ApiErrorResult(BaseModel):
    """Body of an error response, e.g. {"cod": 401, "message": "Invalid API key"}."""
    cod: Union[int, str]
    message: str = ""


# ===== SERVICE RESPONSES =====

class ReadingResponse(BaseModel):
    """Reading as returned by the HTTP service."""
    model_config = ConfigDict(from_attributes=True)

    is_successful: bool
    is_from_cache: bool
    api_request_made: bool
    measured_at: Optional[datetime] = None
    fetched_at: Optional[datetime] = None
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    temperature_min: Optional[float] = None
    temperature_max: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None
    visibility: Optional[int] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    wind_gust: Optional[float] = None
    cloudiness: Optional[int] = None
    condition: Optional[str] = None
    condition_description: Optional[str] = None
    city_name: Optional[str] = None
    country_code: Optional[str] = None
    error: Optional[str] = None
