"""
Versioned query cache shared by every surface in the process.

Each fetch takes a version from one monotonic clock when it starts. A response
is applied only if its version is not older than the stored one, so overlapping
refetches for the same key settle on the most recently started request no
matter which response lands last.
"""
import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple

from recrutas_live.core.exceptions import LiveClientError

logger = logging.getLogger(__name__)

QueryKey = Tuple[Any, ...]
Fetcher = Callable[[], Awaitable[Any]]
Observer = Callable[[QueryKey, Any], None]


@dataclass
class CacheEntry:
    key: QueryKey
    data: Any = None
    version: int = 0
    invalidated_version: int = 0
    error: Optional[BaseException] = None
    updated_at: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return self.version > 0

    @property
    def is_stale(self) -> bool:
        return not self.has_data or self.version < self.invalidated_version


def key_matches(key: QueryKey, prefix: Iterable[Any]) -> bool:
    prefix = tuple(prefix)
    return key[: len(prefix)] == prefix


class QueryCache:
    """Key-based cache with prefix invalidation and stale-response rejection."""

    def __init__(self) -> None:
        self._entries: Dict[QueryKey, CacheEntry] = {}
        self._fetchers: Dict[QueryKey, Fetcher] = {}
        self._observers: Dict[QueryKey, List[Observer]] = {}
        self._clock = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()

    # --- registration ---

    def register(self, key: QueryKey, fetcher: Fetcher) -> CacheEntry:
        self._fetchers[key] = fetcher
        return self.entry(key)

    def unregister(self, key: QueryKey) -> None:
        self._fetchers.pop(key, None)
        self._observers.pop(key, None)

    def entry(self, key: QueryKey) -> CacheEntry:
        if key not in self._entries:
            self._entries[key] = CacheEntry(key=key)
        return self._entries[key]

    def get(self, key: QueryKey, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None or not entry.has_data:
            return default
        return entry.data

    def subscribe(self, key: QueryKey, observer: Observer) -> Callable[[], None]:
        """Observe applied updates for key. Returns an unsubscribe callable."""
        self.entry(key)
        self._observers.setdefault(key, []).append(observer)

        def _unsubscribe() -> None:
            observers = self._observers.get(key)
            if observers and observer in observers:
                observers.remove(observer)

        return _unsubscribe

    def is_active(self, key: QueryKey) -> bool:
        return bool(self._observers.get(key))

    # --- fetching ---

    async def fetch(self, key: QueryKey) -> Any:
        """
        Run the registered fetcher and apply its response.

        Returns the data stored after the response is considered, which is
        newer than this response when a later fetch already landed.

        Raises:
            KeyError: no fetcher registered for key
            Exception: whatever the fetcher raised; previous data is kept
        """
        fetcher = self._fetchers.get(key)
        if fetcher is None:
            raise KeyError(f"No fetcher registered for {key!r}")
        entry = self.entry(key)
        version = next(self._clock)
        try:
            data = await fetcher()
        except Exception as e:
            entry.error = e
            raise
        self._apply(entry, version, data)
        return entry.data

    def _apply(self, entry: CacheEntry, version: int, data: Any) -> bool:
        if version < entry.version:
            logger.debug(
                "Discarding response v%s for %s; v%s already stored",
                version, entry.key, entry.version,
            )
            return False
        entry.data = data
        entry.version = version
        entry.error = None
        entry.updated_at = time.time()
        for observer in list(self._observers.get(entry.key, [])):
            try:
                observer(entry.key, data)
            except Exception:
                logger.exception("Cache observer failed for %s", entry.key)
        return True

    # --- invalidation ---

    def invalidate(self, prefix: Iterable[Any]) -> List[asyncio.Task]:
        """
        Mark every key under prefix stale and refetch the observed ones.

        Must be called from a running event loop when any matching key is
        observed. Returns the scheduled refetch tasks.
        """
        prefix = tuple(prefix)
        stamp = next(self._clock)
        tasks: List[asyncio.Task] = []
        for key, entry in list(self._entries.items()):
            if not key_matches(key, prefix):
                continue
            entry.invalidated_version = stamp
            if key in self._fetchers and self.is_active(key):
                tasks.append(self._schedule_refetch(key))
        logger.debug("Invalidated %s (%s refetches)", prefix, len(tasks))
        return tasks

    def _schedule_refetch(self, key: QueryKey) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._refetch(key))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _refetch(self, key: QueryKey) -> None:
        try:
            await self.fetch(key)
        except LiveClientError as e:
            logger.warning("Refetch failed for %s: %s", key, e)
        except Exception:
            logger.exception("Unexpected refetch failure for %s", key)

    async def drain(self) -> None:
        """Wait until every scheduled refetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def clear(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._entries.clear()
        self._fetchers.clear()
        self._observers.clear()
