"""
Query keys. Mutation sites and listeners must use these, never literal tuples.
"""
from typing import Tuple

ROOMS_KEY: Tuple = ("/api/chat/rooms",)
NOTIFICATIONS_KEY: Tuple = ("/api/notifications",)
NOTIFICATION_COUNT_KEY: Tuple = ("/api/notifications/count",)
AGENT_TASKS_KEY: Tuple = ("/api/agent-tasks",)


def room_prefix(room_id: int) -> Tuple:
    """Prefix covering every cached resource scoped to one room."""
    return ("/api/chat/rooms", room_id)


def room_messages_key(room_id: int) -> Tuple:
    return ("/api/chat/rooms", room_id, "messages")
