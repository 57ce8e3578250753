"""
Tests for reconciling a fetched reading against the cached one.
"""
from datetime import timedelta

import pytest

from fakes import BASE_TIME, make_reading
from weathercache.cache.core import CacheEntry, ReconciliationMode
from weathercache.cache.reconciliation import is_newer, reconcile
from weathercache.errors import FetchError
from weathercache.models import Reading

FETCHED_AT = BASE_TIME + timedelta(minutes=5)


def _cached(measured_at=BASE_TIME, temperature=280.0):
    reading = make_reading(measured_at=measured_at, temperature=temperature).stamped(BASE_TIME)
    return CacheEntry(reading=reading, expires_at=BASE_TIME + timedelta(minutes=10))


def _fetched(measured_at, temperature=290.0):
    return make_reading(measured_at=measured_at, temperature=temperature).stamped(FETCHED_AT)


@pytest.mark.parametrize("mode", list(ReconciliationMode))
def test_newer_fetch_is_adopted(mode):
    fetched = _fetched(BASE_TIME + timedelta(minutes=1))
    result = reconcile(_cached(), fetched, mode)

    assert result.reading == fetched
    assert result.to_store == fetched
    assert not result.regressed


@pytest.mark.parametrize("mode", list(ReconciliationMode))
def test_first_fetch_is_adopted(mode):
    fetched = _fetched(BASE_TIME)
    result = reconcile(None, fetched, mode)
    assert result.to_store == fetched


def test_unsuccessful_cached_entry_is_replaced():
    failed = CacheEntry(
        reading=Reading.failure(FetchError("down"), fetched_at=BASE_TIME),
        expires_at=BASE_TIME + timedelta(minutes=10),
    )
    fetched = _fetched(BASE_TIME - timedelta(hours=1))
    result = reconcile(failed, fetched, ReconciliationMode.ALWAYS_USE_LAST_MEASURED)
    assert result.reading == fetched


def test_regression_last_fetched_value_adopts_older_reading():
    fetched = _fetched(BASE_TIME - timedelta(minutes=1))
    result = reconcile(_cached(), fetched, ReconciliationMode.ALWAYS_USE_LAST_FETCHED_VALUE)

    assert result.reading == fetched
    assert result.to_store == fetched
    assert not result.regressed


def test_regression_last_measured_keeps_cached_without_write():
    cached = _cached()
    fetched = _fetched(BASE_TIME - timedelta(minutes=1))
    result = reconcile(cached, fetched, ReconciliationMode.ALWAYS_USE_LAST_MEASURED)

    assert result.reading == cached.reading
    assert result.to_store is None
    assert result.regressed


def test_regression_extend_cache_moves_fetched_at_only():
    cached = _cached()
    fetched = _fetched(BASE_TIME - timedelta(minutes=1))
    result = reconcile(cached, fetched, ReconciliationMode.ALWAYS_USE_LAST_MEASURED_BUT_EXTEND_CACHE)

    assert result.regressed
    assert result.reading.temperature == 280.0
    assert result.reading.measured_at == BASE_TIME
    assert result.reading.fetched_at == FETCHED_AT
    assert result.to_store == result.reading
    # The stored entry itself is not mutated
    assert cached.reading.fetched_at == BASE_TIME


def test_default_mode_extends_cache():
    fetched = _fetched(BASE_TIME - timedelta(minutes=1))
    result = reconcile(_cached(), fetched)
    assert result.to_store is not None
    assert result.to_store.fetched_at == FETCHED_AT
    assert result.to_store.temperature == 280.0


def test_equal_measured_time_prefers_fetched_by_default():
    assert is_newer(_cached(), _fetched(BASE_TIME))
    result = reconcile(_cached(), _fetched(BASE_TIME), ReconciliationMode.ALWAYS_USE_LAST_MEASURED)
    assert result.reading.temperature == 290.0


def test_equal_measured_time_strict_tie_break_keeps_cached():
    assert not is_newer(_cached(), _fetched(BASE_TIME), prefer_fetched_on_tie=False)
    result = reconcile(
        _cached(),
        _fetched(BASE_TIME),
        ReconciliationMode.ALWAYS_USE_LAST_MEASURED,
        prefer_fetched_on_tie=False,
    )
    assert result.reading.temperature == 280.0
    assert result.regressed
