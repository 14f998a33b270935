"""Cache coordinator: serve rendered diagrams from cache, render on miss."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from ...core.errors import CacheIOFailure
from ...core.formats import RenderFormat
from .cache_store import CacheEntry, CacheStore
from .dispatcher import RenderedDiagram

logger = logging.getLogger(__name__)

RenderFn = Callable[[], Awaitable[RenderedDiagram]]


def cache_key(fmt: RenderFormat, request_path: str) -> str:
    """Key covering both the format and the exact request path."""
    return f"{fmt.value}:{request_path}"


class CacheCoordinator:
    """
    Owns the lifecycle of cache entries.

    Entries are content addressed, so they are only ever created or hit.
    Failed renders are never stored. An unreachable store degrades to
    rendering without caching.
    """

    def __init__(self, store: CacheStore, max_age_seconds: int, single_flight: bool = True):
        self.store = store
        self.max_age_seconds = max_age_seconds
        self.single_flight = single_flight
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @property
    def cache_control(self) -> str:
        return f"public, max-age={self.max_age_seconds}, immutable"

    async def fetch_or_render(self, key: str, render_fn: RenderFn) -> Tuple[CacheEntry, bool]:
        """
        Return the cached entry for ``key`` or render and store a new one.

        Args:
            key: Cache key from ``cache_key``
            render_fn: Coroutine factory producing the rendered diagram

        Returns:
            Tuple of the entry and whether it was a cache hit
        """
        entry = await self._lookup(key)
        if entry is not None:
            logger.debug("Cache hit for %s", key)
            return entry, True

        if not self.single_flight:
            return await self._render_and_store(key, render_fn), False

        async with self._key_lock(key):
            # Another request may have stored it while we waited
            entry = await self._lookup(key)
            if entry is not None:
                logger.debug("Cache hit for %s after waiting", key)
                return entry, True
            return await self._render_and_store(key, render_fn), False

    async def _lookup(self, key: str) -> Optional[CacheEntry]:
        try:
            return await self.store.match(key)
        except (CacheIOFailure, OSError) as e:
            logger.warning("Cache read failed for %s, rendering without cache: %s", key, e)
            return None

    async def _render_and_store(self, key: str, render_fn: RenderFn) -> CacheEntry:
        logger.info("Cache miss for %s", key)
        rendered = await render_fn()

        now = time.time()
        entry = CacheEntry(
            body=rendered.body,
            content_type=rendered.content_type,
            cache_control=self.cache_control,
            created_at=now,
            expires_at=now + self.max_age_seconds,
        )
        try:
            await self.store.put(key, entry)
        except (CacheIOFailure, OSError) as e:
            logger.warning("Cache write failed for %s, serving uncached: %s", key, e)
        return entry

    def _key_lock(self, key: str) -> "_KeyLock":
        return _KeyLock(self, key)


class _KeyLock:
    """Per-key lock that is discarded once nobody holds or waits for it."""

    def __init__(self, coordinator: CacheCoordinator, key: str):
        self.coordinator = coordinator
        self.key = key

    async def __aenter__(self):
        locks = self.coordinator._locks
        waiters = self.coordinator._waiters
        lock = locks.setdefault(self.key, asyncio.Lock())
        waiters[self.key] = waiters.get(self.key, 0) + 1
        try:
            await lock.acquire()
        except BaseException:
            self._release_waiter()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.coordinator._locks[self.key].release()
        self._release_waiter()
        return False

    def _release_waiter(self) -> None:
        waiters = self.coordinator._waiters
        waiters[self.key] -= 1
        if waiters[self.key] == 0:
            del waiters[self.key]
            del self.coordinator._locks[self.key]
