"""
OpenWeatherMap client.

Fetches current weather for a location query over HTTP, blocking (requests)
or suspending (httpx), and decodes it into a Reading. Every failure surfaces
as FetchError.
"""
import asyncio
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Dict, Optional, Protocol

import httpx
import requests
from pydantic import ValidationError

from .errors import FetchError, UnsupportedQueryError
from .models import Reading
from .queries import City, Location, LocationQuery, ZipCode
from .schemas import ApiErrorResult, ApiWeatherResult

logger = logging.getLogger("owm_client")

BASE_URL = "https://api.openweathermap.org/data/2.5/weather"

REQUEST_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache, no-store",
    "Connection": "close",
}

ResponseLogger = Callable[[LocationQuery, str], None]


class Fetcher(Protocol):
    """
    Upstream collaborator used by WeatherCache.

    Implementations:
    - OpenWeatherMapFetcher: live HTTP calls (default)
    - test doubles returning scripted readings
    """

    def fetch(self, query: LocationQuery, timeout_ms: int) -> Reading:
        """Fetch a reading, blocking the calling thread. Raises FetchError."""
        ...

    async def fetch_async(self, query: LocationQuery, timeout_ms: int) -> Reading:
        """Fetch a reading, suspending the calling task. Raises FetchError."""
        ...


def build_params(query: LocationQuery, api_key: Optional[str]) -> Dict[str, str]:
    """
    Build query-string parameters for a location query.

    A random "cache" parameter defeats intermediary caches between us and
    the upstream.
    """
    if isinstance(query, Location):
        params = {"lat": str(query.latitude), "lon": str(query.longitude)}
    elif isinstance(query, ZipCode):
        params = {"zip": f"{query.zip},{query.country_code}"}
    elif isinstance(query, City):
        q = query.city_name
        if query.country_code:
            q = f"{q},{query.country_code}"
        params = {"q": q}
    else:
        raise UnsupportedQueryError(query)

    params["appid"] = api_key or ""
    params["cache"] = str(uuid.uuid4())
    return params


def _error_message(status_code: int, text: str, reason: str) -> str:
    """Prefer the upstream's own error message when the body carries one."""
    try:
        error = ApiErrorResult.model_validate_json(text)
    except ValidationError:
        return f"HTTP {status_code} {reason}".strip()
    return f"HTTP {status_code}: {error.message}" if error.message else f"HTTP {status_code}"


def decode_reading(text: str) -> Reading:
    """Decode a successful response body into a Reading."""
    try:
        result = ApiWeatherResult.model_validate_json(text)
    except ValidationError as e:
        raise FetchError("Could not deserialize JSON content") from e
    return Reading.from_api_result(result)


class OpenWeatherMapFetcher:
    """
    Live fetcher for the OpenWeatherMap current-weather endpoint.

    timeout_ms bounds the whole call on both paths. The blocking path runs
    the request on a worker thread and stops waiting at the deadline; a
    request still running then is abandoned and its response discarded.

    Args:
        api_key: OpenWeatherMap API key
        base_url: Endpoint URL
        response_logger: Called with (query, raw body) after each successful
            fetch; errors it raises are logged and ignored
        session: requests session for the blocking path
        async_transport: httpx transport for the suspending path
        max_workers: Worker threads for concurrent blocking fetches
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = BASE_URL,
        response_logger: Optional[ResponseLogger] = None,
        session: Optional[requests.Session] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
        max_workers: int = 32,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._response_logger = response_logger
        self._session = session or requests.Session()
        self._async_transport = async_transport
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="owm-fetch")

    def fetch(self, query: LocationQuery, timeout_ms: int) -> Reading:
        params = build_params(query, self._api_key)
        timeout = timeout_ms / 1000
        future = self._executor.submit(self._get, params, timeout)
        try:
            response = future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            logger.warning(f"Abandoning request for {query!r} after {timeout_ms}ms")
            raise FetchError(f"Request timed out after {timeout_ms}ms") from e
        except requests.Timeout as e:
            raise FetchError(f"Request timed out after {timeout_ms}ms") from e
        except requests.RequestException as e:
            raise FetchError(f"HTTP request failed: {e}") from e

        if not response.ok:
            raise FetchError(
                _error_message(response.status_code, response.text, response.reason or ""),
                status_code=response.status_code,
            )
        reading = decode_reading(response.text)
        self._log_response(query, response.text)
        return reading

    def _get(self, params: Dict[str, str], timeout: float) -> requests.Response:
        return self._session.get(
            self._base_url,
            params=params,
            headers=REQUEST_HEADERS,
            timeout=timeout,
        )

    async def fetch_async(self, query: LocationQuery, timeout_ms: int) -> Reading:
        params = build_params(query, self._api_key)
        timeout = timeout_ms / 1000
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                headers=REQUEST_HEADERS,
                transport=self._async_transport,
            ) as client:
                response = await asyncio.wait_for(
                    client.get(self._base_url, params=params),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchError(f"Request timed out after {timeout_ms}ms") from e
        except httpx.HTTPError as e:
            raise FetchError(f"HTTP request failed: {e}") from e

        if not response.is_success:
            raise FetchError(
                _error_message(response.status_code, response.text, response.reason_phrase),
                status_code=response.status_code,
            )
        reading = decode_reading(response.text)
        # File writes stay off the event loop
        await asyncio.to_thread(self._log_response, query, response.text)
        return reading

    def _log_response(self, query: LocationQuery, text: str) -> None:
        if self._response_logger is None:
            return
        try:
            self._response_logger(query, text)
        except Exception as e:
            logger.warning(f"Response logger failed for {query!r}: {e}")

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._session.close()
