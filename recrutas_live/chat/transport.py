"""
WebSocket transport. Text frames only.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Union

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.asyncio.client import ClientConnection, connect

from recrutas_live.core.exceptions import TransportError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def receive_text(self) -> str: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[Transport]]


class WebSocketTransport:
    """Transport over the `websockets` asyncio client."""

    def __init__(self, websocket: ClientConnection):
        self._ws = websocket

    @classmethod
    async def connect(cls, url: str) -> "WebSocketTransport":
        try:
            websocket = await connect(url, ping_interval=None)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise TransportError(f"Could not connect to {url}: {e}")
        logger.debug("WebSocket handshake complete: %s", url)
        return cls(websocket)

    async def send_text(self, data: str) -> None:
        try:
            await self._ws.send(data)
        except ConnectionClosed as e:
            raise TransportError(f"Connection closed while sending: {e}")

    async def receive_text(self) -> str:
        try:
            message: Union[str, bytes] = await self._ws.recv()
        except ConnectionClosed as e:
            raise TransportError(f"Connection closed: {e}")
        if isinstance(message, bytes):
            return message.decode("utf-8", errors="replace")
        return message

    async def close(self) -> None:
        await self._ws.close()
