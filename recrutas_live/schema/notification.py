"""
Notification schemas.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class NotificationType(str, Enum):
    APPLICATION_VIEWED = "application_viewed"
    APPLICATION_RANKED = "application_ranked"
    APPLICATION_ACCEPTED = "application_accepted"
    APPLICATION_REJECTED = "application_rejected"
    EXAM_COMPLETED = "exam_completed"
    CANDIDATE_MESSAGE = "candidate_message"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    HIGH_SCORE_ALERT = "high_score_alert"
    DIRECT_CONNECTION = "direct_connection"
    STATUS_UPDATE = "status_update"
    NEW_MATCH = "new_match"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


RELATED_JOB_FALLBACK = "Job Position"


class Notification(BaseModel):
    id: int
    type: str
    title: str
    message: str
    priority: Priority = Priority.MEDIUM
    read: bool = False
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    data: Optional[Dict[str, Any]] = None
    related_job_id: Optional[int] = None
    related_application_id: Optional[int] = None
    related_match_id: Optional[int] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def known_type(self) -> Optional[NotificationType]:
        """Enum member for the type, or None for types this client does not know yet."""
        try:
            return NotificationType(self.type)
        except ValueError:
            return None

    @property
    def wants_toast(self) -> bool:
        return self.priority in (Priority.HIGH, Priority.URGENT)

    def related_label(self, job_titles: Mapping[int, str]) -> Optional[str]:
        """Title of the related job; dangling references fall back to a generic label."""
        if self.related_job_id is None:
            return None
        return job_titles.get(self.related_job_id) or RELATED_JOB_FALLBACK


class UnreadCount(BaseModel):
    count: int = 0


def format_badge(count: Optional[int], cap: int = 99) -> Optional[str]:
    """Badge text for an unread count: nothing for zero, "99+" above the cap."""
    if not count or count <= 0:
        return None
    if count > cap:
        return f"{cap}+"
    return str(count)
