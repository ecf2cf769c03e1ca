"""
Application agent task schema. Read-only on the client.
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class AgentTaskStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUBMITTED = "submitted"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {AgentTaskStatus.SUBMITTED, AgentTaskStatus.FAILED, AgentTaskStatus.CANCELLED}


class AgentTask(BaseModel):
    id: int
    application_id: int
    status: AgentTaskStatus
    last_error: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
