"""
Chat schemas: rooms and messages.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ChatRoom(BaseModel):
    """One two-party conversation tied to a job match."""
    id: int
    job_id: int
    candidate_id: str
    hiring_manager_id: str
    match_id: Optional[int] = None
    status: str = "active"
    created_at: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True

    @property
    def participants(self) -> List[str]:
        return [self.candidate_id, self.hiring_manager_id]

    def other_participant(self, user_id: str) -> Optional[str]:
        if user_id == self.candidate_id:
            return self.hiring_manager_id
        if user_id == self.hiring_manager_id:
            return self.candidate_id
        return None


class Message(BaseModel):
    """Single chat message. Server-assigned id and timestamp."""
    id: int
    room_id: int = Field(..., alias="chatRoomId")
    sender_id: str
    body: str = Field(..., alias="message")
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class MessageCreateBody(BaseModel):
    """Body for POST /api/chat/rooms/{room_id}/messages."""
    message: str = Field(..., min_length=1)
