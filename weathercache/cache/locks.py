"""
Per-key mutual exclusion shared by threads and asyncio tasks.

A key is held by at most one caller at a time, whether that caller is a
thread using the blocking API or a coroutine using the suspending API.
Different keys never contend.
"""
import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Hashable, Optional

logger = logging.getLogger("cache.locks")


class _ThreadWaiter:
    """A blocked thread waiting to be handed the key."""

    def __init__(self):
        self.event = threading.Event()

    def grant(self) -> bool:
        self.event.set()
        return True


class _TaskWaiter:
    """A suspended coroutine waiting to be handed the key."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop
        self.future: asyncio.Future = loop.create_future()
        self.granted = False
        self.cancelled = False

    def grant(self) -> bool:
        if self.cancelled:
            return False
        try:
            self.loop.call_soon_threadsafe(self._resolve)
        except RuntimeError:
            # Event loop already closed; nobody is left to take the key.
            return False
        self.granted = True
        return True

    def _resolve(self) -> None:
        if not self.future.done():
            self.future.set_result(None)


@dataclass
class _KeyEntry:
    """Lock state for one key."""
    held: bool = False
    # Holder plus waiters; the entry is reclaimed when this reaches zero
    ref_count: int = 0
    waiters: Deque[Any] = field(default_factory=deque)


class KeyLockHandle:
    """Ownership of one key. Release exactly once."""

    def __init__(self, manager: "KeyLockManager", key: Hashable):
        self._manager = manager
        self.key = key
        self._released = False

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._manager._release(self.key)

    def __enter__(self) -> "KeyLockHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class _AsyncKeyLock:
    """Async context manager returned by KeyLockManager.lock_async()."""

    def __init__(self, manager: "KeyLockManager", key: Hashable):
        self._manager = manager
        self._key = key
        self._handle: Optional[KeyLockHandle] = None

    async def __aenter__(self) -> KeyLockHandle:
        self._handle = await self._manager.acquire_async(self._key)
        return self._handle

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._handle is not None:
            self._handle.release()


class KeyLockManager:
    """
    Grants one exclusive, key-scoped critical section at a time.

    Waiters are queued per key and ownership is handed directly to the next
    waiter on release, so access to a key is FIFO and no waiter starves.
    Entries are reference counted and dropped once nobody holds or waits for
    the key.

    Usage:
        locks = KeyLockManager()
        with locks.lock(key):
            ...
        async with locks.lock_async(key):
            ...
    """

    def __init__(self):
        self._entries: Dict[Hashable, _KeyEntry] = {}
        # Guards _entries and every _KeyEntry; never held while waiting
        self._lock = threading.Lock()

    def lock(self, key: Hashable) -> KeyLockHandle:
        """Block until the key is acquired; use as a context manager."""
        return self.acquire(key)

    def lock_async(self, key: Hashable) -> _AsyncKeyLock:
        """Suspend until the key is acquired; use as an async context manager."""
        return _AsyncKeyLock(self, key)

    def acquire(self, key: Hashable) -> KeyLockHandle:
        """
        Acquire the key, blocking the calling thread while it is held.

        Returns:
            Handle whose release() gives the key to the next waiter
        """
        with self._lock:
            entry = self._enter(key)
            if not entry.held:
                entry.held = True
                return KeyLockHandle(self, key)
            waiter = _ThreadWaiter()
            entry.waiters.append(waiter)
            logger.debug(f"Waiting for lock on {key!r} (waiters: {len(entry.waiters)})")

        waiter.event.wait()
        return KeyLockHandle(self, key)

    async def acquire_async(self, key: Hashable) -> KeyLockHandle:
        """
        Acquire the key, suspending the calling task while it is held.

        Cancelling the task while it waits removes it from the queue and
        re-raises CancelledError; the key is never left held.

        Returns:
            Handle whose release() gives the key to the next waiter
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            entry = self._enter(key)
            if not entry.held:
                entry.held = True
                return KeyLockHandle(self, key)
            waiter = _TaskWaiter(loop)
            entry.waiters.append(waiter)
            logger.debug(f"Waiting for lock on {key!r} (waiters: {len(entry.waiters)})")

        try:
            await waiter.future
        except asyncio.CancelledError:
            with self._lock:
                if waiter.granted:
                    # Ownership arrived together with the cancellation
                    self._release_locked(key)
                else:
                    waiter.cancelled = True
                    entry.waiters.remove(waiter)
                    self._leave_locked(key, entry)
            logger.debug(f"Cancelled while waiting for lock on {key!r}")
            raise
        return KeyLockHandle(self, key)

    def _enter(self, key: Hashable) -> _KeyEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = _KeyEntry()
            self._entries[key] = entry
        entry.ref_count += 1
        return entry

    def _leave_locked(self, key: Hashable, entry: _KeyEntry) -> None:
        entry.ref_count -= 1
        if entry.ref_count == 0:
            del self._entries[key]

    def _release(self, key: Hashable) -> None:
        with self._lock:
            self._release_locked(key)

    def _release_locked(self, key: Hashable) -> None:
        entry = self._entries[key]
        self._leave_locked(key, entry)
        while entry.waiters:
            waiter = entry.waiters.popleft()
            if waiter.grant():
                # held stays True: ownership moves straight to the waiter
                return
            self._leave_locked(key, entry)
        entry.held = False

    def is_locked(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.held

    @property
    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get lock manager statistics."""
        with self._lock:
            return {
                "active_keys": len(self._entries),
                "waiters": sum(len(e.waiters) for e in self._entries.values()),
            }
