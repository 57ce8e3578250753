"""
Core cache data structures.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from ..models import Reading


DEFAULT_RESILIENCY_PERIOD_MS = 300_000
DEFAULT_FETCH_TIMEOUT_MS = 5_000


class ReconciliationMode(str, Enum):
    """
    What to do when a refetch returns data the upstream reports as measured
    earlier than the reading already in the cache.
    """
    # Keep the cached reading. The next call refetches again as soon as the
    # cache period has elapsed, which may impact API usage.
    ALWAYS_USE_LAST_MEASURED = "always_use_last_measured"
    # Keep the cached reading and move its fetch time to now, delaying the
    # next mandatory refetch.
    ALWAYS_USE_LAST_MEASURED_BUT_EXTEND_CACHE = "always_use_last_measured_but_extend_cache"
    # Adopt and cache the fetched reading even though it is reported older.
    ALWAYS_USE_LAST_FETCHED_VALUE = "always_use_last_fetched_value"


class FreshnessDecision(Enum):
    """Outcome of checking a cache entry against the cache period."""
    SERVE_CACHED_FRESH = "serve_cached_fresh"
    ATTEMPT_REFETCH = "attempt_refetch"


class CacheConfig(BaseModel):
    """
    Immutable per-cache settings. All periods are in milliseconds.

    prefer_fetched_on_tie decides the measured-time tie-break: when True a
    fetched reading with the same measured time as the cached one replaces it.
    """
    model_config = ConfigDict(frozen=True)

    cache_period_ms: int
    resiliency_period_ms: int = DEFAULT_RESILIENCY_PERIOD_MS
    reconciliation_mode: ReconciliationMode = ReconciliationMode.ALWAYS_USE_LAST_MEASURED_BUT_EXTEND_CACHE
    fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
    prefer_fetched_on_tie: bool = True

    @model_validator(mode="after")
    def _check_periods(self) -> "CacheConfig":
        for name in ("cache_period_ms", "resiliency_period_ms", "fetch_timeout_ms"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.resiliency_period_ms < self.cache_period_ms:
            raise ValueError("resiliency_period_ms must be >= cache_period_ms")
        return self

    @property
    def cache_period(self) -> timedelta:
        return timedelta(milliseconds=self.cache_period_ms)

    @property
    def resiliency_period(self) -> timedelta:
        return timedelta(milliseconds=self.resiliency_period_ms)


@dataclass
class CacheEntry:
    """
    Last known reading for a key, plus the time after which it may no longer
    be served even as a resiliency fallback.
    """
    reading: Reading
    expires_at: datetime

    @property
    def fetched_at(self) -> datetime:
        return self.reading.fetched_at

    @property
    def is_successful(self) -> bool:
        return self.reading.is_successful

    def age(self, now: datetime) -> timedelta:
        return now - self.reading.fetched_at

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
