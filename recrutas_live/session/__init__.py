from .session_layer import (
    SessionContext,
    normalize_role,
    normalize_session,
)

__all__ = [
    "SessionContext",
    "normalize_role",
    "normalize_session",
]
