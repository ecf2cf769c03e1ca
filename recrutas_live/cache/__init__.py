from .query_cache import CacheEntry, QueryCache, key_matches
from .keys import (
    AGENT_TASKS_KEY,
    NOTIFICATION_COUNT_KEY,
    NOTIFICATIONS_KEY,
    ROOMS_KEY,
    room_messages_key,
    room_prefix,
)

__all__ = [
    "CacheEntry",
    "QueryCache",
    "key_matches",
    "AGENT_TASKS_KEY",
    "NOTIFICATION_COUNT_KEY",
    "NOTIFICATIONS_KEY",
    "ROOMS_KEY",
    "room_messages_key",
    "room_prefix",
]
