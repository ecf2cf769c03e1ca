"""
Room membership: join/leave chat rooms over a shared connection.
Joins are fire-and-forget; the server sends no acknowledgment.
"""
import logging
from typing import Dict, Optional, Set

from recrutas_live.core.exceptions import TransportError
from recrutas_live.schema.frames import JoinFrame, LeaveFrame

logger = logging.getLogger(__name__)


class RoomMembership:
    """Remembers joined rooms across connections so a reconnect can re-join them."""

    def __init__(self) -> None:
        # room_id -> user_id that joined it
        self._rooms: Dict[int, str] = {}

    @property
    def rooms(self) -> Set[int]:
        return set(self._rooms)

    async def join(self, connection, room_id: int, user_id: str) -> bool:
        """
        Join room_id on connection. Returns True if a Join frame went out (or was queued).

        Without a usable connection the room is only remembered and joined on
        the next connection.
        """
        self._rooms[room_id] = user_id
        if connection is None or connection.disconnected:
            logger.debug("Room %s remembered; no live connection to join on", room_id)
            return False
        if room_id in connection.rooms:
            return False
        connection.rooms.add(room_id)
        try:
            await connection.send(JoinFrame(room_id=room_id, user_id=user_id))
        except TransportError:
            connection.rooms.discard(room_id)
            raise
        logger.debug("Joined room %s on %s as %s", room_id, connection.id, user_id)
        return True

    async def leave(self, connection, room_id: int, user_id: Optional[str] = None) -> bool:
        user_id = self._rooms.pop(room_id, None) or user_id
        if connection is None or room_id not in connection.rooms:
            return False
        connection.rooms.discard(room_id)
        if connection.disconnected or user_id is None:
            return False
        await connection.send(LeaveFrame(room_id=room_id, user_id=user_id))
        logger.debug("Left room %s on %s", room_id, connection.id)
        return True

    async def rejoin_all(self, connection) -> int:
        joined = 0
        for room_id, user_id in list(self._rooms.items()):
            if await self.join(connection, room_id, user_id):
                joined += 1
        return joined
