"""
Session layer - one normalized view of who is signed in and in which role.
Consumers read SessionContext.state instead of digging through user metadata.
"""
from typing import Callable, List, Optional
import logging

from recrutas_live.api.client import ApiClient
from recrutas_live.core.exceptions import NotAuthenticated
from recrutas_live.schema.auth import ROLE_ALIASES, Role, SessionState, SessionUser

logger = logging.getLogger(__name__)

SessionObserver = Callable[[SessionState], None]


def normalize_role(raw: Optional[str]) -> Optional[Role]:
    """Map any observed role spelling to a Role; unknown or missing -> None."""
    if not raw:
        return None
    return ROLE_ALIASES.get(raw.strip().lower())


def normalize_session(user: Optional[SessionUser]) -> SessionState:
    if user is None:
        return SessionState()
    return SessionState(
        is_authenticated=True,
        role=normalize_role(user.raw_role()),
        user_id=user.id,
        email=user.email,
    )


class SessionContext:
    """Holds the current SessionState and refreshes it from GET /api/auth/user."""

    def __init__(self, api: ApiClient):
        self.api = api
        self._state = SessionState()
        self._observers: List[SessionObserver] = []

    @property
    def state(self) -> SessionState:
        return self._state

    async def refresh(self) -> SessionState:
        """
        Reload the session.

        A 401 means signed out. Any other failure propagates and leaves the
        previous state untouched.
        """
        try:
            user = await self.api.current_user()
        except NotAuthenticated:
            self._set(SessionState())
            return self._state
        self._set(normalize_session(user))
        return self._state

    def require_user_id(self) -> str:
        if not self._state.is_authenticated or not self._state.user_id:
            raise NotAuthenticated()
        return self._state.user_id

    def subscribe(self, observer: SessionObserver) -> None:
        self._observers.append(observer)

    def _set(self, state: SessionState) -> None:
        changed = state != self._state
        self._state = state
        if changed:
            logger.info(
                "Session %s (role: %s)",
                "active" if state.is_authenticated else "signed out",
                state.role.value if state.role else None,
            )
            for observer in list(self._observers):
                observer(state)
