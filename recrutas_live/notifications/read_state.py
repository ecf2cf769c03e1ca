"""
Read-state reconciler. Fire-and-confirm: the server is the source of truth, so
nothing is flipped locally; both notification caches are invalidated after the
request succeeds.
"""
import asyncio
import logging
from typing import List

from recrutas_live.api.client import ApiClient
from recrutas_live.cache.keys import NOTIFICATION_COUNT_KEY, NOTIFICATIONS_KEY
from recrutas_live.cache.query_cache import QueryCache

logger = logging.getLogger(__name__)


class ReadStateReconciler:
    def __init__(self, api: ApiClient, cache: QueryCache):
        self.api = api
        self.cache = cache

    async def mark_read(self, notification_id: int) -> List[asyncio.Task]:
        """Mark one notification read. Marking an already read one again is a no-op."""
        await self.api.mark_read(notification_id)
        logger.debug("Marked notification %s read", notification_id)
        return self._invalidate()

    async def mark_all_read(self) -> List[asyncio.Task]:
        await self.api.mark_all_read()
        logger.debug("Marked all notifications read")
        return self._invalidate()

    def _invalidate(self) -> List[asyncio.Task]:
        return self.cache.invalidate(NOTIFICATIONS_KEY) + self.cache.invalidate(NOTIFICATION_COUNT_KEY)
