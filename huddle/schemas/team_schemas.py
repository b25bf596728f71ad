from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr

from .user_schemas import UserPublic, UserSummary


class TeamCreate(BaseModel):
    name: str
    description: Optional[str] = None
    member_ids: List[int] = []
    max_members: int = 10


class TeamBrief(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class TeamRead(TeamBrief):
    owner: UserSummary
    leader: UserSummary
    members: List[UserPublic]
    max_members: int
    created_at: Optional[datetime] = None


class AddMemberRequest(BaseModel):
    user_id: int


class ManualMemberRequest(BaseModel):
    name: str
    email: EmailStr
    bio: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None


class InviteByUsernameRequest(BaseModel):
    username: str
    reason: Optional[str] = None
