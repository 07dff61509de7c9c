"""Time-bounded cache with at most one in-flight fetch per key."""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def _retrieve_exception(task: asyncio.Task) -> None:
    # Every caller may have been cancelled; keep asyncio from reporting the
    # error as never retrieved.
    if not task.cancelled():
        task.exception()


class SingleflightCache(Generic[K, V]):
    """TTL cache that deduplicates concurrent fetches of the same key.

    Concurrent callers for a key that is missing or expired await one shared
    fetch. Failed fetches are not cached and their error reaches every
    waiter. When full, the least recently used entry is evicted.

    Not thread safe; share an instance only within one event loop.
    """

    def __init__(
        self,
        max_entries: int = 4096,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[K, tuple[V, float]] = OrderedDict()
        self._inflight: dict[K, asyncio.Task[V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, key: K) -> tuple[bool, V | None]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return False, None
        self._entries.move_to_end(key)
        return True, value

    def _store(self, key: K, value: V, ttl: float) -> None:
        self._entries[key] = (value, self._clock() + ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def get_or_fetch(
        self, key: K, ttl: float, fetch: Callable[[], Awaitable[V]]
    ) -> V:
        """Return the cached value for key, fetching it at most once.

        Args:
            key: Cache key
            ttl: Seconds a fetched value stays fresh
            fetch: Coroutine factory producing the value

        Returns:
            Cached or freshly fetched value
        """
        hit, value = self._lookup(key)
        if hit:
            return value  # type: ignore[return-value]

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, ttl, fetch))
            task.add_done_callback(_retrieve_exception)
            self._inflight[key] = task
        # Shielded so no caller's cancellation stops the shared fetch.
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self, key: K, ttl: float, fetch: Callable[[], Awaitable[V]]
    ) -> V:
        try:
            value = await fetch()
            self._store(key, value, ttl)
            return value
        finally:
            self._inflight.pop(key, None)

    def invalidate(self, key: K) -> None:
        """Forget a cached value."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
