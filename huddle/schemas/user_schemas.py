from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr


class UserSummary(BaseModel):
    id: int
    name: str
    username: str

    class Config:
        from_attributes = True


class UserPublic(UserSummary):
    email: EmailStr
    bio: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None


class UserRead(UserPublic):
    role: str
    is_active: bool
    profile_picture: Optional[str] = None
    mobile_number: Optional[str] = None
    gender: Optional[str] = None
    organizer_verified: bool = False
    created_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    username: Optional[str] = None
    bio: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None
    profile_picture: Optional[str] = None
    mobile_number: Optional[str] = None
    gender: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class AccountDelete(BaseModel):
    password: Optional[str] = None


class ProfilePictureUpdate(BaseModel):
    profile_picture: Optional[str] = None


class OrganizerRequestCreate(BaseModel):
    organization: Optional[str] = None
    reason: str
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    description: Optional[str] = None


class OrganizerRequestStatusRead(BaseModel):
    has_requested: bool
    is_organizer: bool
    status: str
    organization: Optional[str] = None
    reason: Optional[str] = None
    request_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None

