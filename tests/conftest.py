"""
Shared fixtures.
"""
import asyncio

import pytest

from fakes import FakeClock, FakeFetcher
from weathercache.cache import WeatherCache


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def make_cache(clock, fetcher):
    """Factory for a WeatherCache wired to the fake clock and fetcher."""
    def _make(**kwargs):
        kwargs.setdefault("cache_period_ms", 1_000)
        kwargs.setdefault("resiliency_period_ms", 10_000)
        kwargs.setdefault("fetcher", fetcher)
        kwargs.setdefault("clock", clock)
        return WeatherCache(**kwargs)
    return _make


@pytest.fixture(params=["blocking", "suspending"])
def get_reading(request):
    """Run one cache call through either entry point."""
    if request.param == "blocking":
        return lambda cache, query: cache.get(query)
    return lambda cache, query: asyncio.run(cache.get_async(query))
