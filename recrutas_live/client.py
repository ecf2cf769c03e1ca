"""
LiveClient - wires the chat and notification delivery path together.
"""
import logging
from typing import Callable, List, Optional
from urllib.parse import urlencode

from recrutas_live.api.client import ApiClient
from recrutas_live.cache.keys import AGENT_TASKS_KEY, ROOMS_KEY, room_messages_key
from recrutas_live.cache.query_cache import QueryCache
from recrutas_live.chat.connection_manager import Connection, ConnectionManager
from recrutas_live.chat.dispatcher import EventDispatcher
from recrutas_live.chat.rooms import RoomMembership
from recrutas_live.chat.send_path import OutboundSendPath, PendingMessage
from recrutas_live.chat.supervisor import ReconnectSupervisor
from recrutas_live.chat.transport import Connector
from recrutas_live.core.config import settings
from recrutas_live.core.exceptions import NotAuthenticated
from recrutas_live.notifications.poller import NotificationPoller
from recrutas_live.notifications.read_state import ReadStateReconciler
from recrutas_live.schema.agent_task import AgentTask
from recrutas_live.schema.chat import ChatRoom, Message
from recrutas_live.schema.notification import Notification
from recrutas_live.session.session_layer import SessionContext

logger = logging.getLogger(__name__)

MessagesListener = Callable[[int, List[Message]], None]


class LiveClient:
    """One per signed-in user. Use as an async context manager."""

    def __init__(
        self,
        api: Optional[ApiClient] = None,
        connector: Optional[Connector] = None,
        ws_url: Optional[str] = None,
        cache: Optional[QueryCache] = None,
        on_toast: Optional[Callable[[Notification], None]] = None,
        supervisor_options: Optional[dict] = None,
        poller_options: Optional[dict] = None,
        ack_timeout: Optional[float] = None,
    ):
        self.api = api or ApiClient()
        self.cache = cache or QueryCache()
        self.session = SessionContext(self.api)
        self.connections = ConnectionManager(connector)
        self.membership = RoomMembership()
        self.send_path = OutboundSendPath(self.cache, api=self.api, ack_timeout=ack_timeout)
        self.dispatcher = EventDispatcher(
            self.cache,
            on_delivered=self.send_path.on_delivered,
            on_toast=on_toast,
        )
        self.connections.add_frame_listener(self.dispatcher.dispatch)
        self.notifications = NotificationPoller(self.api, self.cache, **(poller_options or {}))
        self.read_state = ReadStateReconciler(self.api, self.cache)
        self.cache.register(ROOMS_KEY, self.api.list_rooms)
        self.cache.register(AGENT_TASKS_KEY, self.api.list_agent_tasks)
        self.ws_url = ws_url or settings.ws_url
        self._supervisor_options = supervisor_options or {}
        self.supervisor: Optional[ReconnectSupervisor] = None
        self._room_unsubscribers = {}

    async def __aenter__(self) -> "LiveClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    @property
    def connection(self) -> Optional[Connection]:
        return self.supervisor.connection if self.supervisor is not None else None

    @property
    def disconnected(self) -> bool:
        return self.supervisor is None or self.supervisor.disconnected

    async def start(self) -> None:
        """
        Load the session, then start the socket supervisor and the count poller.

        Raises:
            NotAuthenticated: no signed-in user
        """
        state = await self.session.refresh()
        if not state.is_authenticated:
            raise NotAuthenticated()
        endpoint = f"{self.ws_url}?{urlencode({'userId': state.user_id})}"
        self.supervisor = ReconnectSupervisor(
            self.connections,
            endpoint,
            membership=self.membership,
            **self._supervisor_options,
        )
        self.supervisor.on_open(self.dispatcher.catch_up)
        self.supervisor.start()
        self.notifications.start()
        logger.info("Live client started for user %s", state.user_id)

    async def stop(self) -> None:
        await self.notifications.stop()
        if self.supervisor is not None:
            await self.supervisor.stop()
        await self.connections.close_all()
        await self.cache.drain()
        logger.info("Live client stopped")

    # --- rooms ---

    async def open_room(self, room_id: int, on_messages: Optional[MessagesListener] = None) -> List[Message]:
        """
        Join a room and load its messages.

        Raises:
            NotAuthenticated: no signed-in user
            RequestError, TransportError: the initial message fetch failed
        """
        user_id = self.session.require_user_id()
        key = room_messages_key(room_id)
        self.cache.register(key, lambda: self.api.list_messages(room_id))

        def _observer(_key, messages: List[Message]) -> None:
            if on_messages is not None:
                on_messages(room_id, messages)

        if room_id in self._room_unsubscribers:
            self._room_unsubscribers.pop(room_id)()
        self._room_unsubscribers[room_id] = self.cache.subscribe(key, _observer)
        await self.membership.join(self.connection, room_id, user_id)
        await self.cache.fetch(key)
        return self.messages(room_id)

    async def close_room(self, room_id: int) -> None:
        unsubscribe = self._room_unsubscribers.pop(room_id, None)
        if unsubscribe is not None:
            unsubscribe()
        self.cache.unregister(room_messages_key(room_id))
        await self.membership.leave(self.connection, room_id, self.session.state.user_id)

    def messages(self, room_id: int) -> List[Message]:
        return self.cache.get(room_messages_key(room_id), [])

    async def rooms(self) -> List[ChatRoom]:
        return await self.cache.fetch(ROOMS_KEY)

    async def agent_tasks(self) -> List[AgentTask]:
        return await self.cache.fetch(AGENT_TASKS_KEY)

    # --- notifications ---

    async def mark_read(self, notification_id: int) -> None:
        await self.read_state.mark_read(notification_id)

    async def mark_all_read(self) -> None:
        await self.read_state.mark_all_read()

    # --- sending ---

    async def send(self, room_id: int, body: str) -> PendingMessage:
        return await self.send_path.send(self.connection, room_id, self.session.require_user_id(), body)

    async def retry(self, pending: PendingMessage) -> PendingMessage:
        return await self.send_path.retry(self.connection, pending)

    def discard(self, pending: PendingMessage) -> bool:
        return self.send_path.discard(pending)
