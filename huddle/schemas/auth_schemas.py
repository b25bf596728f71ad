from pydantic import BaseModel, EmailStr
from typing import Dict, Optional

from .user_schemas import UserRead


class TokenData(BaseModel):
    user_id: Optional[int] = None
    role: Optional[str] = None


class AuthResponse(BaseModel):
    token: str
    user: UserRead


class RegisterRequest(BaseModel):
    name: str
    username: str
    email: EmailStr
    password: str
    bio: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None
    # Redeemed as part of registration when present.
    invite_token: Optional[str] = None


class LoginRequest(BaseModel):
    email_or_username: str
    password: str


class GoogleLoginRequest(BaseModel):
    token: str # This will be the Google ID token received from the client


class UsernameAvailability(BaseModel):
    available: bool
    message: str
