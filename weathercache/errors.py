"""
Error taxonomy for the weather cache.

CallerError subclasses are raised immediately for bad input and never cached.
FetchError is raised by fetchers and handled entirely inside the cache.
"""
from typing import Optional


class WeatherCacheError(Exception):
    """Base exception for weathercache."""


class CallerError(WeatherCacheError, ValueError):
    """The caller passed something the cache cannot work with."""


class UnsupportedQueryError(CallerError, TypeError):
    """Query type is not one of the supported location variants."""

    def __init__(self, query: object):
        self.query = query
        super().__init__(f"Unsupported type provided: {type(query).__name__}")


class InvalidConfigurationError(CallerError):
    """Cache settings failed validation."""


class FetchError(WeatherCacheError):
    """
    An upstream call failed.

    Covers transport errors, timeouts, non-2xx responses and undecodable
    payloads alike; the cache does not discriminate between them.
    """

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        self.status_code = status_code
        if message:
            super().__init__(f"Exception during API call: {message}")
        else:
            super().__init__("Exception during API call.")
