"""
Tests for freshness and resiliency decisions.
"""
from datetime import timedelta

import pytest

from fakes import BASE_TIME, make_reading
from weathercache.cache.core import CacheEntry, FreshnessDecision
from weathercache.cache.policies import can_serve_stale, decide_freshness, expiry_for
from weathercache.errors import FetchError
from weathercache.models import Reading

CACHE_PERIOD = timedelta(seconds=1)
RESILIENCY_PERIOD = timedelta(seconds=10)


def _entry(reading=None):
    reading = reading or make_reading().stamped(BASE_TIME)
    return CacheEntry(reading=reading, expires_at=BASE_TIME + RESILIENCY_PERIOD)


def test_no_entry_requires_fetch():
    assert decide_freshness(BASE_TIME, None, CACHE_PERIOD) is FreshnessDecision.ATTEMPT_REFETCH


@pytest.mark.parametrize("age_ms", [0, 500, 1000])
def test_fresh_within_cache_period(age_ms):
    now = BASE_TIME + timedelta(milliseconds=age_ms)
    assert decide_freshness(now, _entry(), CACHE_PERIOD) is FreshnessDecision.SERVE_CACHED_FRESH


def test_refetch_after_cache_period():
    now = BASE_TIME + timedelta(milliseconds=1001)
    assert decide_freshness(now, _entry(), CACHE_PERIOD) is FreshnessDecision.ATTEMPT_REFETCH


def test_unsuccessful_entry_requires_fetch():
    entry = _entry(Reading.failure(FetchError("down"), fetched_at=BASE_TIME))
    assert decide_freshness(BASE_TIME, entry, CACHE_PERIOD) is FreshnessDecision.ATTEMPT_REFETCH


def test_can_serve_stale_within_resiliency_period():
    assert can_serve_stale(BASE_TIME + timedelta(seconds=5), _entry(), RESILIENCY_PERIOD)
    assert can_serve_stale(BASE_TIME + RESILIENCY_PERIOD, _entry(), RESILIENCY_PERIOD)


def test_cannot_serve_stale_after_resiliency_period():
    now = BASE_TIME + RESILIENCY_PERIOD + timedelta(milliseconds=1)
    assert not can_serve_stale(now, _entry(), RESILIENCY_PERIOD)


def test_cannot_serve_stale_without_successful_entry():
    assert not can_serve_stale(BASE_TIME, None, RESILIENCY_PERIOD)
    failed = _entry(Reading.failure(FetchError("down"), fetched_at=BASE_TIME))
    assert not can_serve_stale(BASE_TIME, failed, RESILIENCY_PERIOD)


def test_expiry_for():
    assert expiry_for(BASE_TIME, RESILIENCY_PERIOD) == BASE_TIME + RESILIENCY_PERIOD
