"""
Concurrency tests: single upstream call under contention for one key,
parallelism across keys, and cancellation on the suspending path.
"""
import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from fakes import FakeFetcher
from weathercache.queries import Location

CACHE_PERIOD_MS = 1_000
CONCURRENCY = 100
TRIES = 5

SEATTLE_AREA = Location(48.6371, -122.1237)


def _tally(totals, readings):
    for reading in readings:
        if reading.is_successful:
            totals["successful"] += 1
        if reading.is_from_cache:
            totals["from_cache"] += 1
        else:
            totals["from_api"] += 1


def test_concurrent_blocking_calls_fetch_once_per_burst(make_cache, clock):
    fetcher = FakeFetcher(delay=0.05)
    cache = make_cache(cache_period_ms=CACHE_PERIOD_MS, fetcher=fetcher)
    totals = {"successful": 0, "from_cache": 0, "from_api": 0}

    with ThreadPoolExecutor(max_workers=CONCURRENCY) as pool:
        for i in range(1, TRIES + 1):
            barrier = threading.Barrier(CONCURRENCY)

            def call():
                barrier.wait(timeout=10)
                return cache.get(SEATTLE_AREA)

            futures = [pool.submit(call) for _ in range(CONCURRENCY)]
            _tally(totals, [f.result(timeout=30) for f in futures])

            assert totals["successful"] == CONCURRENCY * i
            assert totals["from_cache"] == (CONCURRENCY - 1) * i
            assert totals["from_api"] == i
            assert fetcher.calls == i

            clock.advance(CACHE_PERIOD_MS + 1)

    assert totals == {"successful": 500, "from_cache": 495, "from_api": 5}
    assert cache.get_stats()["locks"]["active_keys"] == 0


def test_concurrent_async_calls_fetch_once_per_burst(make_cache, clock):
    fetcher = FakeFetcher(delay=0.01)
    cache = make_cache(cache_period_ms=CACHE_PERIOD_MS, fetcher=fetcher)
    totals = {"successful": 0, "from_cache": 0, "from_api": 0}

    async def burst():
        return await asyncio.gather(*(cache.get_async(SEATTLE_AREA) for _ in range(CONCURRENCY)))

    for i in range(1, TRIES + 1):
        _tally(totals, asyncio.run(burst()))

        assert totals["successful"] == CONCURRENCY * i
        assert totals["from_cache"] == (CONCURRENCY - 1) * i
        assert totals["from_api"] == i
        assert fetcher.calls == i

        clock.advance(CACHE_PERIOD_MS + 1)

    assert totals == {"successful": 500, "from_cache": 495, "from_api": 5}


@pytest.mark.asyncio
async def test_mixed_blocking_and_async_callers_fetch_once(make_cache):
    fetcher = FakeFetcher(delay=0.05)
    cache = make_cache(fetcher=fetcher)
    loop = asyncio.get_running_loop()

    with ThreadPoolExecutor(max_workers=50) as pool:
        blocking = [loop.run_in_executor(pool, cache.get, SEATTLE_AREA) for _ in range(50)]
        suspending = [cache.get_async(SEATTLE_AREA) for _ in range(50)]
        readings = await asyncio.gather(*blocking, *suspending)

    assert fetcher.calls == 1
    assert all(r.is_successful for r in readings)
    assert sum(1 for r in readings if not r.is_from_cache) == 1


def test_different_keys_fetch_in_parallel(make_cache):
    fetcher = FakeFetcher(delay=0.3)
    cache = make_cache(fetcher=fetcher)
    locations = [Location(float(i), float(i)) for i in range(10)]

    started = time.monotonic()
    with ThreadPoolExecutor(max_workers=len(locations)) as pool:
        readings = list(pool.map(cache.get, locations))
    elapsed = time.monotonic() - started

    assert fetcher.calls == 10
    assert all(not r.is_from_cache for r in readings)
    # Serialized fetches would take 3 seconds
    assert elapsed < 1.5


@pytest.mark.asyncio
async def test_different_keys_fetch_concurrently_async(make_cache):
    fetcher = FakeFetcher(delay=0.3)
    cache = make_cache(fetcher=fetcher)
    locations = [Location(float(i), float(i)) for i in range(10)]

    started = time.monotonic()
    await asyncio.gather(*(cache.get_async(location) for location in locations))
    elapsed = time.monotonic() - started

    assert fetcher.calls == 10
    assert elapsed < 1.5


@pytest.mark.asyncio
async def test_cancelled_fetch_releases_lock_and_writes_nothing(make_cache):
    fetcher = FakeFetcher(delay=5.0)
    cache = make_cache(fetcher=fetcher)

    task = asyncio.create_task(cache.get_async(SEATTLE_AREA))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    stats = cache.get_stats()
    assert stats["entries"] == 0
    assert stats["locks"]["active_keys"] == 0

    fetcher.delay = 0
    reading = await cache.get_async(SEATTLE_AREA)
    assert reading.is_successful
    assert not reading.is_from_cache


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_disturb_lock_holder(make_cache):
    fetcher = FakeFetcher(delay=0.1)
    cache = make_cache(fetcher=fetcher)

    holder = asyncio.create_task(cache.get_async(SEATTLE_AREA))
    await asyncio.sleep(0.01)
    waiter = asyncio.create_task(cache.get_async(SEATTLE_AREA))
    await asyncio.sleep(0.01)
    waiter.cancel()

    reading = await holder
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert reading.is_successful
    assert fetcher.calls == 1
    assert cache.get_stats()["locks"]["active_keys"] == 0
    assert (await cache.get_async(SEATTLE_AREA)).is_from_cache
