"""
Reconcile a freshly fetched reading against the cached one.

The upstream occasionally reports a measured time older than the reading
already cached. ReconciliationMode decides which reading becomes canonical
and whether the cached reading's fetch time is moved forward.
"""
from dataclasses import dataclass
from typing import Optional

from .core import CacheEntry, ReconciliationMode
from ..models import Reading


@dataclass
class ReconciliationResult:
    """
    Attributes:
        reading: Canonical reading to hand back to the caller (flags unset)
        to_store: Reading to write back to the store, or None to leave it as is
        regressed: True when the upstream reported an older measurement
    """
    reading: Reading
    to_store: Optional[Reading]
    regressed: bool = False


def is_newer(
    entry: Optional[CacheEntry],
    fetched: Reading,
    prefer_fetched_on_tie: bool = True,
) -> bool:
    """
    True if the fetched reading should be treated as at least as recent as the
    cached one.

    Equal measured times count as newer unless prefer_fetched_on_tie is False.
    """
    if entry is None or not entry.is_successful:
        return True
    cached_at = entry.reading.measured_at
    if cached_at is None or fetched.measured_at is None:
        return True
    if prefer_fetched_on_tie:
        return fetched.measured_at >= cached_at
    return fetched.measured_at > cached_at


def reconcile(
    entry: Optional[CacheEntry],
    fetched: Reading,
    mode: ReconciliationMode = ReconciliationMode.ALWAYS_USE_LAST_MEASURED_BUT_EXTEND_CACHE,
    prefer_fetched_on_tie: bool = True,
) -> ReconciliationResult:
    """
    Decide which reading becomes canonical after a successful fetch.

    Args:
        entry: Cache entry that was live when the fetch started
        fetched: Successful reading, already stamped with fetched_at
        mode: Policy for upstream regressions
        prefer_fetched_on_tie: Tie-break for equal measured times

    Returns:
        ReconciliationResult describing what to return and what to store
    """
    if mode == ReconciliationMode.ALWAYS_USE_LAST_FETCHED_VALUE or is_newer(
        entry, fetched, prefer_fetched_on_tie
    ):
        return ReconciliationResult(reading=fetched, to_store=fetched)

    cached = entry.reading
    if mode == ReconciliationMode.ALWAYS_USE_LAST_MEASURED_BUT_EXTEND_CACHE:
        extended = cached.stamped(fetched.fetched_at)
        return ReconciliationResult(reading=extended, to_store=extended, regressed=True)

    # ALWAYS_USE_LAST_MEASURED: no TTL extension
    return ReconciliationResult(reading=cached, to_store=None, regressed=True)
