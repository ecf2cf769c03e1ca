"""
Inbound event dispatcher: decode frames and turn them into cache invalidations.
Unknown frame types are ignored so newer servers never break older clients.
"""
import logging
import time
from typing import Callable, Optional

from recrutas_live.cache.keys import NOTIFICATION_COUNT_KEY, NOTIFICATIONS_KEY, room_prefix
from recrutas_live.cache.query_cache import QueryCache
from recrutas_live.core.exceptions import FrameDecodeError
from recrutas_live.schema.frames import (
    DeliveredFrame,
    NewMessageFrame,
    NotificationFrame,
    PongFrame,
    decode_frame,
)
from recrutas_live.schema.notification import Notification

logger = logging.getLogger(__name__)


class EventDispatcher:
    def __init__(
        self,
        cache: QueryCache,
        on_delivered: Optional[Callable[[DeliveredFrame], None]] = None,
        on_toast: Optional[Callable[[Notification], None]] = None,
    ):
        self.cache = cache
        self.on_delivered = on_delivered
        self.on_toast = on_toast
        self.last_pong_at: Optional[float] = None

    def dispatch(self, connection, text: str):
        """Frame listener for a Connection. Returns the decoded frame, or None if dropped."""
        try:
            frame = decode_frame(text)
        except FrameDecodeError as e:
            logger.warning("Dropping frame on %s: %s", getattr(connection, "id", "?"), e)
            return None
        if frame is None:
            logger.debug("Ignoring frame of unknown type: %.100s", text)
            return None
        self.handle(connection, frame)
        return frame

    def handle(self, connection, frame) -> None:
        if isinstance(frame, NewMessageFrame):
            # Only rooms joined on this connection; never leak into other rooms' caches
            if frame.room_id not in connection.rooms:
                logger.debug("new_message for room %s not joined on %s", frame.room_id, connection.id)
                return
            self.cache.invalidate(room_prefix(frame.room_id))
        elif isinstance(frame, DeliveredFrame):
            if self.on_delivered is not None:
                self.on_delivered(frame)
            self.cache.invalidate(room_prefix(frame.room_id))
        elif isinstance(frame, NotificationFrame):
            self.cache.invalidate(NOTIFICATIONS_KEY)
            self.cache.invalidate(NOTIFICATION_COUNT_KEY)
            if frame.notification.wants_toast and self.on_toast is not None:
                self.on_toast(frame.notification)
        elif isinstance(frame, PongFrame):
            self.last_pong_at = time.time()
        else:
            raise TypeError(f"Unhandled frame kind: {frame.kind}")

    def catch_up(self, connection) -> None:
        """Refetch every joined room after a (re)connect; frames sent while down are lost."""
        for room_id in sorted(connection.rooms):
            self.cache.invalidate(room_prefix(room_id))
