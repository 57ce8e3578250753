"""
Main cache orchestration: per-key locking, hard TTL, resiliency fallback and
reconciliation of refetched readings.
"""
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import ValidationError

from config.settings import Settings, settings as default_settings

from .core import (
    CacheConfig,
    CacheEntry,
    DEFAULT_FETCH_TIMEOUT_MS,
    DEFAULT_RESILIENCY_PERIOD_MS,
    FreshnessDecision,
    ReconciliationMode,
)
from .locks import KeyLockManager
from .policies import can_serve_stale, decide_freshness, expiry_for
from .reconciliation import reconcile
from .store import CacheStore
from ..api_client import BASE_URL, Fetcher, OpenWeatherMapFetcher
from ..errors import FetchError, InvalidConfigurationError
from ..models import Reading
from ..queries import LocationQuery, ensure_supported
from ..response_logger import ResponseFileLogger

logger = logging.getLogger("cache.orchestrator")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WeatherCache:
    """
    Latest weather reading per location with minimal upstream traffic.

    - At most one caller per location works on the cache at a time, so
      concurrent callers for one location trigger a single upstream call
    - Readings younger than the cache period are served without a fetch
    - If a refetch fails, readings younger than the resiliency period are
      served instead of a failure
    - Refetched readings that the upstream reports as older than the cached
      one are handled per ReconciliationMode

    get() and get_async() behave identically; they differ only in whether the
    caller's thread blocks or its task suspends. Neither raises for upstream
    trouble: check Reading.is_successful.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache_period_ms: int = 600_000,
        reconciliation_mode: Union[ReconciliationMode, str] = ReconciliationMode.ALWAYS_USE_LAST_MEASURED_BUT_EXTEND_CACHE,
        resiliency_period_ms: int = DEFAULT_RESILIENCY_PERIOD_MS,
        fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS,
        log_path: Optional[Union[str, Path]] = None,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        prefer_fetched_on_tie: bool = True,
        base_url: str = BASE_URL,
    ):
        """
        Initialize the cache.

        Args:
            api_key: OpenWeatherMap API key (unused when fetcher is given)
            cache_period_ms: Hard TTL
            reconciliation_mode: Policy for upstream measured-time regressions
            resiliency_period_ms: How long to keep serving a reading when the
                upstream fails; must be >= cache_period_ms
            fetch_timeout_ms: Timeout for one upstream call
            log_path: Directory for the last raw response per location
            fetcher: Upstream collaborator, defaults to OpenWeatherMapFetcher
            clock: Returns the current UTC time
            prefer_fetched_on_tie: Equal measured times adopt the fetched reading
            base_url: Upstream endpoint for the default fetcher

        Raises:
            InvalidConfigurationError: If any setting is invalid
        """
        try:
            self.config = CacheConfig(
                cache_period_ms=cache_period_ms,
                resiliency_period_ms=resiliency_period_ms,
                reconciliation_mode=reconciliation_mode,
                fetch_timeout_ms=fetch_timeout_ms,
                prefer_fetched_on_tie=prefer_fetched_on_tie,
            )
        except ValidationError as e:
            raise InvalidConfigurationError(str(e)) from e

        if fetcher is None:
            response_logger = ResponseFileLogger(log_path) if log_path else None
            fetcher = OpenWeatherMapFetcher(api_key, base_url=base_url, response_logger=response_logger)
        self._fetcher = fetcher
        self._clock = clock or utcnow
        self._store = CacheStore(self._clock)
        self._locks = KeyLockManager()

        # Stats tracking
        self._stats = {
            "hits_fresh": 0,
            "hits_stale": 0,
            "fetches": 0,
            "fetch_failures": 0,
            "failures": 0,
            "regressions": 0,
        }
        self._stats_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "WeatherCache":
        """Build a cache from application settings; kwargs override them."""
        options = dict(
            api_key=settings.owm_api_key,
            base_url=settings.owm_base_url,
            cache_period_ms=settings.cache_period_ms,
            resiliency_period_ms=settings.resiliency_period_ms,
            fetch_timeout_ms=settings.fetch_timeout_ms,
            reconciliation_mode=settings.reconciliation_mode,
            log_path=settings.response_log_path,
        )
        options.update(kwargs)
        return cls(**options)

    def get(self, query: LocationQuery) -> Reading:
        """
        Get the latest reading, blocking the calling thread.

        Raises:
            UnsupportedQueryError: If query is not a Location, ZipCode or City
        """
        ensure_supported(query)
        with self._locks.lock(query):
            now, entry, decision = self._check_cache(query)
            if decision is FreshnessDecision.SERVE_CACHED_FRESH:
                return self._serve_fresh(query, entry)
            try:
                fetched = self._fetcher.fetch(query, self.config.fetch_timeout_ms)
            except FetchError as e:
                return self._on_fetch_failed(query, entry, now, e)
            return self._on_fetched(query, entry, now, fetched)

    async def get_async(self, query: LocationQuery) -> Reading:
        """
        Get the latest reading, suspending the calling task.

        Cancelling the task aborts the wait for the lock or the in-flight
        fetch and raises CancelledError; the store is left untouched.

        Raises:
            UnsupportedQueryError: If query is not a Location, ZipCode or City
        """
        ensure_supported(query)
        async with self._locks.lock_async(query):
            now, entry, decision = self._check_cache(query)
            if decision is FreshnessDecision.SERVE_CACHED_FRESH:
                return self._serve_fresh(query, entry)
            try:
                fetched = await self._fetcher.fetch_async(query, self.config.fetch_timeout_ms)
            except FetchError as e:
                return self._on_fetch_failed(query, entry, now, e)
            return self._on_fetched(query, entry, now, fetched)

    # The steps below run under the key lock and never suspend.

    def _check_cache(
        self, query: LocationQuery
    ) -> Tuple[datetime, Optional[CacheEntry], FreshnessDecision]:
        now = self._clock()
        entry = self._store.get(query, now)
        return now, entry, decide_freshness(now, entry, self.config.cache_period)

    def _serve_fresh(self, query: LocationQuery, entry: CacheEntry) -> Reading:
        logger.debug(f"CACHE HIT (fresh): {query!r}")
        self._count("hits_fresh")
        return entry.reading.with_flags(is_from_cache=True, api_request_made=False)

    def _on_fetched(
        self,
        query: LocationQuery,
        entry: Optional[CacheEntry],
        now: datetime,
        fetched: Reading,
    ) -> Reading:
        if not fetched.is_successful:
            return self._on_fetch_failed(query, entry, now, FetchError(fetched.error or ""))

        self._count("fetches")
        fetched = fetched.stamped(self._clock())
        result = reconcile(
            entry,
            fetched,
            self.config.reconciliation_mode,
            self.config.prefer_fetched_on_tie,
        )
        if result.regressed:
            self._count("regressions")
            logger.info(
                f"Upstream regression for {query!r}: fetched measured_at "
                f"{fetched.measured_at} < cached {entry.reading.measured_at}, "
                f"keeping cached ({self.config.reconciliation_mode.value})"
            )
        else:
            logger.info(f"CACHE REFRESHED: {query!r}")

        if result.to_store is not None:
            self._store.set(
                query,
                result.to_store,
                expiry_for(result.to_store.fetched_at, self.config.resiliency_period),
            )
        return result.reading.with_flags(is_from_cache=False, api_request_made=True)

    def _on_fetch_failed(
        self,
        query: LocationQuery,
        entry: Optional[CacheEntry],
        now: datetime,
        error: Exception,
    ) -> Reading:
        self._count("fetch_failures")
        if can_serve_stale(now, entry, self.config.resiliency_period):
            logger.warning(f"Fetch failed for {query!r}, serving cached reading: {error}")
            self._count("hits_stale")
            return entry.reading.with_flags(is_from_cache=True, api_request_made=False)

        logger.warning(f"Fetch failed for {query!r}, no usable cached reading: {error}")
        self._count("failures")
        return Reading.failure(error, fetched_at=self._clock())

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self._stats[name] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            stats = dict(self._stats)
        total_requests = stats["hits_fresh"] + stats["fetches"] + stats["fetch_failures"]
        hit_rate = (stats["hits_fresh"] / total_requests * 100) if total_requests > 0 else 0
        stats.update(
            entries=len(self._store),
            hit_rate_percent=round(hit_rate, 1),
            locks=self._locks.get_stats(),
        )
        return stats

    def close(self) -> None:
        close = getattr(self._fetcher, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "WeatherCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# Global cache instance
_weather_cache: Optional[WeatherCache] = None


def get_weather_cache() -> WeatherCache:
    """Get or create the global weather cache from settings."""
    global _weather_cache
    if _weather_cache is None:
        _weather_cache = WeatherCache.from_settings(default_settings)
    return _weather_cache
