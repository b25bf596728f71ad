from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from huddle.models.user import Role
from .event_schemas import EventRead
from .invite_schemas import InviteRead
from .team_schemas import TeamRead
from .user_schemas import UserRead


class AdminAnalytics(BaseModel):
    total_users: int
    total_events: int
    total_teams: int
    pending_invites: int
    active_users: int
    recent_registrations: int
    pending_events: int
    pending_organizer_requests: int


class RoleUpdate(BaseModel):
    role: Role


class UserActionResult(BaseModel):
    message: str
    user: UserRead


class UserDetails(BaseModel):
    user: UserRead
    events: List[EventRead]
    joined_events: List[EventRead]
    teams: List[TeamRead]
    invites: List[InviteRead]


class OutboxMessageRead(BaseModel):
    id: int
    channel: str
    recipient: str
    subject: Optional[str] = None
    status: str
    attempts: int
    provider: Optional[str] = None
    last_error: Optional[str] = None
    created_at: datetime
    sent_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PurgeResult(BaseModel):
    invites_removed: int
    otps_removed: int
