from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from .team_schemas import TeamRead
from .user_schemas import UserSummary


class NotificationRead(BaseModel):
    id: int
    recipient_id: int
    sender: Optional[UserSummary] = None
    type: str # e.g., "team_invitation", "event_join"
    title: str
    message: str
    team_id: Optional[int] = None
    event_id: Optional[int] = None
    invite_id: Optional[int] = None
    is_read: bool
    is_accepted: Optional[bool] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCount(BaseModel):
    count: int


class InvitationResponse(BaseModel):
    message: str
    notification: NotificationRead
    team: Optional[TeamRead] = None
