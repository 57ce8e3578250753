"""
Freshness and resiliency decisions.

Pure functions of the current time and the cached entry; nothing here reads
the clock or touches the store.
"""
from datetime import datetime, timedelta
from typing import Optional

from .core import CacheEntry, FreshnessDecision


def decide_freshness(
    now: datetime,
    entry: Optional[CacheEntry],
    cache_period: timedelta,
) -> FreshnessDecision:
    """
    Decide whether a cached entry can be served without calling upstream.

    Args:
        now: Time of the call
        entry: Live cache entry for the key, if any
        cache_period: Hard TTL

    Returns:
        SERVE_CACHED_FRESH if a successful entry was fetched at most
        cache_period ago, ATTEMPT_REFETCH otherwise
    """
    if entry is None or not entry.is_successful:
        return FreshnessDecision.ATTEMPT_REFETCH
    if entry.age(now) <= cache_period:
        return FreshnessDecision.SERVE_CACHED_FRESH
    return FreshnessDecision.ATTEMPT_REFETCH


def can_serve_stale(
    now: datetime,
    entry: Optional[CacheEntry],
    resiliency_period: timedelta,
) -> bool:
    """
    Check whether a failed refetch may fall back to the cached entry.

    True when the entry exists, was successful, and was fetched at most
    resiliency_period before now.
    """
    if entry is None or not entry.is_successful:
        return False
    return entry.age(now) <= resiliency_period


def expiry_for(fetched_at: datetime, resiliency_period: timedelta) -> datetime:
    """Absolute time after which an entry fetched at fetched_at is dropped."""
    return fetched_at + resiliency_period
