"""
Client-side connection manager for the chat WebSocket: open/close transport
sessions, queue frames until the handshake completes, fan inbound text out to
listeners.
"""
import asyncio
import logging
import uuid
from enum import Enum
from typing import Callable, List, Optional, Set

from recrutas_live.chat.transport import Connector, Transport, WebSocketTransport
from recrutas_live.core.exceptions import NotConnected, TransportError
from recrutas_live.schema.frames import OutboundFrame, encode_frame

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERROR = "error"


FrameListener = Callable[["Connection", str], None]
StateListener = Callable[["Connection", ConnectionState], None]


class Connection:
    """One transport session and the rooms joined on it."""

    def __init__(
        self,
        endpoint: str,
        frame_listeners: Optional[List[FrameListener]] = None,
    ) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.endpoint = endpoint
        self.state = ConnectionState.CONNECTING
        self.rooms: Set[int] = set()
        self.error: Optional[BaseException] = None
        self._transport: Optional[Transport] = None
        # Frames sent while connecting; flushed in order before the state turns open
        self._outbox: List[str] = []
        self._send_lock = asyncio.Lock()
        self._settled = asyncio.Event()
        self._done = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._frame_listeners: List[FrameListener] = list(frame_listeners or [])
        self._state_listeners: List[StateListener] = []

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.state.value} rooms={sorted(self.rooms)}>"

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    @property
    def disconnected(self) -> bool:
        """Status flag for the UI: the session is gone and frames cannot be sent."""
        return self.state in (ConnectionState.CLOSED, ConnectionState.ERROR)

    def add_frame_listener(self, listener: FrameListener) -> None:
        self._frame_listeners.append(listener)

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    async def wait_open(self) -> None:
        """
        Wait for the handshake to finish.

        Raises:
            NotConnected: the connection failed or was closed instead
        """
        await self._settled.wait()
        if self.state != ConnectionState.OPEN:
            raise NotConnected()

    async def wait_closed(self) -> None:
        await self._done.wait()

    async def send(self, frame: OutboundFrame) -> None:
        """
        Send a frame, or queue it while the handshake is still running.

        Raises:
            NotConnected: connection is closed or failed
            TransportError: the transport rejected the frame
        """
        text = encode_frame(frame)
        if self.state == ConnectionState.CONNECTING:
            self._outbox.append(text)
            logger.debug("Queued %s frame on %s until open", frame.kind, self.id)
            return
        if self.state != ConnectionState.OPEN:
            raise NotConnected()
        await self._transmit(text)

    async def _transmit(self, text: str) -> None:
        async with self._send_lock:
            try:
                await self._transport.send_text(text)
            except TransportError as e:
                self._fail(e)
                raise

    def start(self, connector: Connector) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run(connector))

    async def _run(self, connector: Connector) -> None:
        try:
            try:
                self._transport = await connector(self.endpoint)
            except TransportError as e:
                self._fail(e)
                return
            except Exception as e:
                logger.exception("Connector for %s raised unexpectedly", self.endpoint)
                self._fail(e)
                return
            if self.state != ConnectionState.CONNECTING:
                return
            while self._outbox:
                text = self._outbox.pop(0)
                async with self._send_lock:
                    try:
                        await self._transport.send_text(text)
                    except TransportError as e:
                        self._fail(e)
                        return
            self._set_state(ConnectionState.OPEN)
            logger.info("Connection %s open: %s", self.id, self.endpoint)

            while self.state == ConnectionState.OPEN:
                try:
                    text = await self._transport.receive_text()
                except TransportError as e:
                    self._fail(e)
                    return
                self._deliver(text)
        finally:
            await self._close_transport()

    def _deliver(self, text: str) -> None:
        for listener in list(self._frame_listeners):
            try:
                listener(self, text)
            except Exception:
                logger.exception("Frame listener failed on connection %s", self.id)

    def _fail(self, exc: BaseException) -> None:
        if self.disconnected:
            return
        self.error = exc
        logger.warning("Connection %s to %s failed: %s", self.id, self.endpoint, exc)
        self._outbox.clear()
        self._set_state(ConnectionState.ERROR)
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        self.state = state
        if state != ConnectionState.CONNECTING:
            self._settled.set()
        if state in (ConnectionState.CLOSED, ConnectionState.ERROR):
            self._done.set()
        for listener in list(self._state_listeners):
            try:
                listener(self, state)
            except Exception:
                logger.exception("State listener failed on connection %s", self.id)

    async def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            await transport.close()
        except Exception as e:
            logger.debug("Transport close on %s raised: %s", self.id, e)

    async def close(self) -> None:
        """Tear the session down. Safe to call more than once."""
        if self.state == ConnectionState.CLOSED:
            return
        self._outbox.clear()
        self._set_state(ConnectionState.CLOSED)
        task = self._task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        else:
            await self._close_transport()
        logger.info("Connection %s closed", self.id)


class ConnectionManager:
    """Opens and tracks transport sessions; every session gets the shared frame listeners."""

    def __init__(self, connector: Optional[Connector] = None) -> None:
        self._connector: Connector = connector or WebSocketTransport.connect
        self._connections: Set[Connection] = set()
        self._frame_listeners: List[FrameListener] = []

    @property
    def connections(self) -> Set[Connection]:
        return set(self._connections)

    def add_frame_listener(self, listener: FrameListener) -> None:
        self._frame_listeners.append(listener)

    def open(self, endpoint: str) -> Connection:
        """
        Start a session and return it immediately in connecting state.
        Readiness arrives asynchronously; await connection.wait_open() if needed.
        """
        connection = Connection(endpoint, frame_listeners=self._frame_listeners)
        connection.add_state_listener(self._on_state)
        self._connections.add(connection)
        connection.start(self._connector)
        logger.debug("Opening connection %s to %s", connection.id, endpoint)
        return connection

    def _on_state(self, connection: Connection, state: ConnectionState) -> None:
        if state in (ConnectionState.CLOSED, ConnectionState.ERROR):
            self._connections.discard(connection)

    async def close(self, connection: Connection) -> None:
        await connection.close()
        self._connections.discard(connection)

    async def close_all(self) -> None:
        for connection in list(self._connections):
            await self.close(connection)
