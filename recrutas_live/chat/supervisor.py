"""
Reconnect supervisor.

Keeps one live connection for the client regardless of which surfaces are
mounted: disconnected -> connecting -> open -> backoff -> connecting ...
Delays grow exponentially with jitter and reset after a successful open.
"""
import asyncio
import logging
import random
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from recrutas_live.chat.connection_manager import Connection, ConnectionManager
from recrutas_live.chat.rooms import RoomMembership
from recrutas_live.core.config import settings
from recrutas_live.core.exceptions import NotConnected, TransportError
from recrutas_live.schema.frames import PingFrame

logger = logging.getLogger(__name__)

OpenCallback = Callable[[Connection], None]


class SupervisorState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class ReconnectSupervisor:
    def __init__(
        self,
        manager: ConnectionManager,
        endpoint: str,
        membership: Optional[RoomMembership] = None,
        initial_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        multiplier: Optional[float] = None,
        jitter: Optional[float] = None,
        heartbeat_interval: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[float, float], float] = random.uniform,
    ):
        """
        Args:
            manager: opens the underlying connections
            endpoint: WebSocket URL
            membership: rooms to re-join on every new connection
            initial_delay: first backoff delay in seconds
            max_delay: backoff cap in seconds
            multiplier: growth factor per failed attempt
            jitter: +/- fraction of the delay added at random
            heartbeat_interval: seconds between ping frames while open
            sleep: awaitable used for backoff waits
            rand: uniform random source for jitter
        """
        self.manager = manager
        self.endpoint = endpoint
        self.membership = membership
        self.initial_delay = settings.RECONNECT_INITIAL_DELAY if initial_delay is None else initial_delay
        self.max_delay = settings.RECONNECT_MAX_DELAY if max_delay is None else max_delay
        self.multiplier = settings.RECONNECT_MULTIPLIER if multiplier is None else multiplier
        self.jitter = settings.RECONNECT_JITTER if jitter is None else jitter
        self.heartbeat_interval = settings.HEARTBEAT_INTERVAL if heartbeat_interval is None else heartbeat_interval
        self._sleep = sleep
        self._rand = rand

        self.state = SupervisorState.DISCONNECTED
        self.connection: Optional[Connection] = None
        self.attempt = 0
        self.connects = 0
        self._open_callbacks: List[OpenCallback] = []
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def disconnected(self) -> bool:
        return self.connection is None or self.connection.disconnected

    def on_open(self, callback: OpenCallback) -> None:
        """Run callback each time a connection reaches open (first connect and every reconnect)."""
        self._open_callbacks.append(callback)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before reconnect attempt `attempt` (0-indexed)."""
        delay = min(self.initial_delay * (self.multiplier ** attempt), self.max_delay)
        spread = delay * self.jitter
        return max(0.0, delay + self._rand(-spread, spread))

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stopping = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        self._stopping = True
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if self.connection is not None:
            await self.manager.close(self.connection)
        self.state = SupervisorState.STOPPED
        logger.info("Supervisor stopped for %s", self.endpoint)

    async def _run(self) -> None:
        while not self._stopping:
            self.state = SupervisorState.CONNECTING
            connection = self.manager.open(self.endpoint)
            self.connection = connection
            if self.membership is not None:
                # Joins queue on the connecting session and go out right after the handshake
                await self.membership.rejoin_all(connection)

            try:
                await connection.wait_open()
            except NotConnected:
                pass
            else:
                self.state = SupervisorState.OPEN
                self.attempt = 0
                self.connects += 1
                if self.connects > 1:
                    logger.info("Reconnected to %s", self.endpoint)
                for callback in list(self._open_callbacks):
                    try:
                        callback(connection)
                    except Exception:
                        logger.exception("Open callback failed")
                await self._watch(connection)

            if self._stopping:
                break
            delay = self.backoff_delay(self.attempt)
            self.attempt += 1
            self.state = SupervisorState.BACKOFF
            logger.warning(
                "Connection to %s lost; retrying in %.1fs (attempt %s)",
                self.endpoint, delay, self.attempt,
            )
            await self._sleep(delay)

    async def _watch(self, connection: Connection) -> None:
        """Heartbeat until the connection drops."""
        while connection.is_open:
            try:
                await asyncio.wait_for(connection.wait_closed(), timeout=self.heartbeat_interval)
            except asyncio.TimeoutError:
                try:
                    await connection.send(PingFrame())
                except TransportError as e:
                    logger.debug("Heartbeat failed on %s: %s", connection.id, e)
