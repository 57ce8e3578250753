"""
Cache coordination: per-key locking, hard TTL, resiliency fallback and
reconciliation of refetched readings.
"""
from .core import CacheConfig, CacheEntry, FreshnessDecision, ReconciliationMode
from .locks import KeyLockHandle, KeyLockManager
from .store import CacheStore
from .policies import can_serve_stale, decide_freshness, expiry_for
from .reconciliation import ReconciliationResult, is_newer, reconcile
from .orchestrator import WeatherCache, get_weather_cache

__all__ = [
    # Core types
    "CacheConfig",
    "CacheEntry",
    "FreshnessDecision",
    "ReconciliationMode",
    # Locking
    "KeyLockHandle",
    "KeyLockManager",
    # Store
    "CacheStore",
    # Policies
    "can_serve_stale",
    "decide_freshness",
    "expiry_for",
    "ReconciliationResult",
    "is_newer",
    "reconcile",
    # Orchestrator
    "WeatherCache",
    "get_weather_cache",
]
