from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, EmailStr

from .team_schemas import TeamBrief
from .user_schemas import UserRead


class InviteCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    reason: Optional[str] = None


class InviteRead(BaseModel):
    id: int
    team_id: int
    email: EmailStr
    invited_name: Optional[str] = None
    status: str
    expires_at: datetime
    last_sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InviteWithToken(InviteRead):
    # Returned to the team owner only; lets them share the link directly.
    token: str


class InvitePublic(BaseModel):
    id: int
    email: EmailStr
    expires_at: datetime
    team: TeamBrief

    class Config:
        from_attributes = True


class InviteAcceptRequest(BaseModel):
    name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    bio: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None


class InviteJoinRequest(BaseModel):
    bio: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None


class InviteRedeemed(BaseModel):
    message: str
    token: Optional[str] = None
    user: UserRead
    team: TeamBrief
