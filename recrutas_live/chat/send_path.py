"""
Outbound send path.

A message counts as sent only once the server echoes its client id back in a
Delivered frame. Until then it is pending; without an echo inside the ack
timeout it is marked failed and can be retried with the same client id.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from recrutas_live.api.client import ApiClient
from recrutas_live.cache.keys import room_prefix
from recrutas_live.cache.query_cache import QueryCache
from recrutas_live.core.config import settings
from recrutas_live.core.exceptions import (
    DeliveryTimeout,
    EmptyMessage,
    LiveClientError,
    MessageTooLong,
    NotConnected,
    TransportError,
)
from recrutas_live.schema.chat import Message
from recrutas_live.schema.frames import DeliveredFrame, SendFrame

logger = logging.getLogger(__name__)


class SendStatus(str, Enum):
    SENDING = "sending"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class PendingMessage:
    client_id: str
    room_id: int
    sender_id: str
    body: str
    status: SendStatus = SendStatus.SENDING
    message_id: Optional[int] = None
    error: Optional[LiveClientError] = None
    attempts: int = 0

    @property
    def can_retry(self) -> bool:
        return self.status == SendStatus.FAILED


@dataclass
class Composer:
    """Text box state for one room."""
    text: str = ""


class OutboundSendPath:
    def __init__(
        self,
        cache: QueryCache,
        api: Optional[ApiClient] = None,
        ack_timeout: Optional[float] = None,
        max_length: Optional[int] = None,
    ):
        self.cache = cache
        self.api = api
        self.ack_timeout = settings.SEND_ACK_TIMEOUT if ack_timeout is None else ack_timeout
        self.max_length = settings.MAX_MESSAGE_LENGTH if max_length is None else max_length
        self._pending: Dict[str, PendingMessage] = {}
        self._waiters: Dict[str, asyncio.Future] = {}
        self._composers: Dict[int, Composer] = {}

    def composer(self, room_id: int) -> Composer:
        if room_id not in self._composers:
            self._composers[room_id] = Composer()
        return self._composers[room_id]

    def pending_for(self, room_id: int) -> List[PendingMessage]:
        """Unconfirmed messages for a room, oldest first."""
        return [p for p in self._pending.values() if p.room_id == room_id]

    def validate(self, body: Optional[str]) -> str:
        """
        Trim and check a message body before anything touches the network.

        Raises:
            EmptyMessage: body is empty or whitespace only
            MessageTooLong: body exceeds the server limit
        """
        text = (body or "").strip()
        if not text:
            raise EmptyMessage()
        if len(text) > self.max_length:
            raise MessageTooLong(self.max_length)
        return text

    async def send(self, connection, room_id: int, sender_id: str, body: str) -> PendingMessage:
        """
        Send body to room_id and wait for the server's acknowledgment.

        Returns the pending message in delivered or failed state. Validation
        errors are raised before any frame is built.
        """
        text = self.validate(body)
        pending = PendingMessage(
            client_id=uuid.uuid4().hex,
            room_id=room_id,
            sender_id=sender_id,
            body=text,
        )
        self._pending[pending.client_id] = pending
        await self._transmit(connection, pending)
        return pending

    async def send_composed(self, connection, room_id: int, sender_id: str) -> PendingMessage:
        return await self.send(connection, room_id, sender_id, self.composer(room_id).text)

    async def retry(self, connection, pending: PendingMessage) -> PendingMessage:
        if not pending.can_retry:
            return pending
        self._pending[pending.client_id] = pending
        await self._transmit(connection, pending)
        return pending

    async def _transmit(self, connection, pending: PendingMessage) -> None:
        pending.status = SendStatus.SENDING
        pending.error = None
        pending.attempts += 1
        waiter = asyncio.get_running_loop().create_future()
        self._waiters[pending.client_id] = waiter
        try:
            if connection is None:
                raise NotConnected()
            await connection.send(
                SendFrame(
                    room_id=pending.room_id,
                    sender_id=pending.sender_id,
                    body=pending.body,
                    client_id=pending.client_id,
                )
            )
            message_id = await asyncio.wait_for(waiter, timeout=self.ack_timeout)
        except asyncio.TimeoutError:
            self._mark_failed(pending, DeliveryTimeout())
        except TransportError as e:
            self._mark_failed(pending, e)
        else:
            self._mark_delivered(pending, message_id)
        finally:
            self._waiters.pop(pending.client_id, None)

    def discard(self, pending: PendingMessage) -> bool:
        """Forget a failed message the user gave up on. Returns False if it is still in flight."""
        if pending.status == SendStatus.SENDING:
            return False
        return self._pending.pop(pending.client_id, None) is not None

    def on_delivered(self, frame: DeliveredFrame) -> None:
        """Resolve the waiting send for the echoed client id."""
        waiter = self._waiters.get(frame.client_id)
        if waiter is not None and not waiter.done():
            waiter.set_result(frame.message_id)
            return
        pending = self._pending.get(frame.client_id)
        if pending is not None and pending.status == SendStatus.FAILED:
            # Acknowledged after we gave up: the server did persist it
            logger.info("Late acknowledgment for %s in room %s", frame.client_id, frame.room_id)
            self._mark_delivered(pending, frame.message_id)

    def _mark_delivered(self, pending: PendingMessage, message_id: Optional[int]) -> None:
        pending.status = SendStatus.DELIVERED
        pending.message_id = message_id
        pending.error = None
        self._pending.pop(pending.client_id, None)
        composer = self.composer(pending.room_id)
        if composer.text.strip() == pending.body:
            composer.text = ""

    def _mark_failed(self, pending: PendingMessage, error: LiveClientError) -> None:
        pending.status = SendStatus.FAILED
        pending.error = error
        logger.warning(
            "Message %s to room %s not confirmed: %s",
            pending.client_id, pending.room_id, error.message,
        )

    async def send_via_api(self, room_id: int, body: str) -> Message:
        """
        Send through POST /api/chat/rooms/{room_id}/messages instead of the socket.

        Raises:
            EmptyMessage, MessageTooLong: before any request
            RequestError, TransportError: the request failed
        """
        text = self.validate(body)
        if self.api is None:
            raise NotConnected("No API client configured.")
        message = await self.api.send_message(room_id, text)
        composer = self.composer(room_id)
        if composer.text.strip() == text:
            composer.text = ""
        self.cache.invalidate(room_prefix(room_id))
        return message
