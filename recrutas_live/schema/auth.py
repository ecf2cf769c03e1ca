"""
Session schemas.
"""
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel


class Role(str, Enum):
    CANDIDATE = "candidate"
    TALENT_OWNER = "talent_owner"


# Role spellings seen in user metadata -> canonical role
ROLE_ALIASES: Dict[str, Role] = {
    "candidate": Role.CANDIDATE,
    "talent_owner": Role.TALENT_OWNER,
    "recruiter": Role.TALENT_OWNER,
}


class SessionUser(BaseModel):
    """User payload from GET /api/auth/user. Role may live in several places."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    app_metadata: Dict[str, Any] = {}

    class Config:
        extra = "ignore"

    def raw_role(self) -> Optional[str]:
        for candidate in (
            self.role,
            self.user_metadata.get("role"),
            self.app_metadata.get("role"),
        ):
            if candidate:
                return str(candidate)
        return None


class SessionState(BaseModel):
    """Normalized session shape every consumer reads."""
    is_authenticated: bool = False
    role: Optional[Role] = None
    user_id: Optional[str] = None
    email: Optional[str] = None

    class Config:
        frozen = True

    @property
    def needs_role_selection(self) -> bool:
        return self.is_authenticated and self.role is None
