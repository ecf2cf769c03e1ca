"""
Notification poller.

The unread count is fetched on a fixed interval whether or not a socket is
open. The full list is fetched only while the notification panel is open.
A failed fetch leaves the last known values in place.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from recrutas_live.api.client import ApiClient
from recrutas_live.cache.keys import NOTIFICATION_COUNT_KEY, NOTIFICATIONS_KEY
from recrutas_live.cache.query_cache import QueryCache
from recrutas_live.core.config import settings
from recrutas_live.core.exceptions import LiveClientError
from recrutas_live.schema.notification import Notification, format_badge

logger = logging.getLogger(__name__)

CountListener = Callable[[int], None]


class NotificationPoller:
    def __init__(
        self,
        api: ApiClient,
        cache: QueryCache,
        interval: Optional[float] = None,
        badge_cap: Optional[int] = None,
        on_count: Optional[CountListener] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.cache = cache
        self.interval = settings.NOTIFICATION_POLL_INTERVAL if interval is None else interval
        self.badge_cap = settings.UNREAD_BADGE_CAP if badge_cap is None else badge_cap
        self.on_count = on_count
        self.last_error: Optional[Exception] = None
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._panel_unsubscribe: Optional[Callable[[], None]] = None

        cache.register(NOTIFICATION_COUNT_KEY, api.unread_count)
        cache.register(NOTIFICATIONS_KEY, api.list_notifications)
        # The badge is always mounted, so count invalidations always refetch
        cache.subscribe(NOTIFICATION_COUNT_KEY, self._count_updated)

    @property
    def count(self) -> int:
        return self.cache.get(NOTIFICATION_COUNT_KEY, 0)

    @property
    def badge(self) -> Optional[str]:
        return format_badge(self.count, self.badge_cap)

    @property
    def notifications(self) -> List[Notification]:
        return self.cache.get(NOTIFICATIONS_KEY, [])

    @property
    def panel_open(self) -> bool:
        return self._panel_unsubscribe is not None

    def unread(self) -> List[Notification]:
        return [n for n in self.notifications if not n.read]

    def _count_updated(self, key, count: int) -> None:
        if self.on_count is not None:
            self.on_count(count)

    async def poll_once(self) -> int:
        """Fetch the unread count once. Failures keep the previous count and never raise."""
        try:
            await self.cache.fetch(NOTIFICATION_COUNT_KEY)
        except LiveClientError as e:
            self.last_error = e
            logger.warning("Unread count fetch failed, keeping %s: %s", self.count, e)
        except Exception as e:
            self.last_error = e
            logger.exception("Unexpected unread count failure, keeping %s", self.count)
        else:
            self.last_error = None
        return self.count

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self.close_panel()

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await self._sleep(self.interval)

    async def open_panel(self) -> List[Notification]:
        """Show the panel: fetch the list now and refetch it on invalidation while open."""
        if self._panel_unsubscribe is None:
            self._panel_unsubscribe = self.cache.subscribe(NOTIFICATIONS_KEY, lambda key, data: None)
        try:
            await self.cache.fetch(NOTIFICATIONS_KEY)
        except LiveClientError as e:
            self.last_error = e
            logger.warning("Notification list fetch failed: %s", e)
        return self.notifications

    def close_panel(self) -> None:
        if self._panel_unsubscribe is not None:
            self._panel_unsubscribe()
            self._panel_unsubscribe = None
