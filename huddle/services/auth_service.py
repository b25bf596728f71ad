import logging
import re
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from google.oauth2 import id_token
from google.auth.transport import requests as google_requests

from huddle.api.dependencies import get_db, get_settings
from huddle.core import security
from huddle.core.config import Settings
from huddle.models import user as user_model
from huddle.schemas import auth_schemas

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
USERNAME_MIN_LENGTH = 3


def username_problem(username: str) -> Optional[str]:
    if len(username) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    if not USERNAME_PATTERN.match(username):
        return "Username can only contain letters, numbers, and underscores"
    return None


def get_user_by_email(db: Session, email: str) -> Optional[user_model.User]:
    return db.query(user_model.User).filter(user_model.User.email == email.lower()).first()


def get_user_by_username(db: Session, username: str) -> Optional[user_model.User]:
    return db.query(user_model.User).filter(func.lower(user_model.User.username) == username.lower()).first()


def check_username(db: Session, username: str) -> auth_schemas.UsernameAvailability:
    problem = username_problem(username)
    if problem:
        return auth_schemas.UsernameAvailability(available=False, message=problem)
    if get_user_by_username(db, username):
        return auth_schemas.UsernameAvailability(available=False, message="Username already taken")
    return auth_schemas.UsernameAvailability(available=True, message="Username is available")


def derive_username(db: Session, email: str) -> str:
    """Builds a free username from the local part of an email address."""
    base = re.sub(r"[^a-z0-9_]", "", email.split("@")[0].lower()) or "user"
    if len(base) < USERNAME_MIN_LENGTH:
        base = f"{base}_user"
    candidate = base
    suffix = 1
    while get_user_by_username(db, candidate):
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    username: str,
    password: Optional[str],
    bio: Optional[str] = None,
    social_links: Optional[dict] = None,
    google_id: Optional[str] = None,
) -> user_model.User:
    """Adds a new user to the session after the uniqueness checks.

    A missing password stores an unusable hash, so the account can only be
    reached through Google sign-in or a later password change.
    """
    email = email.lower()
    username = username.lower()
    problem = username_problem(username)
    if problem:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)
    if get_user_by_email(db, email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    if get_user_by_username(db, username):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    password_hash = security.get_password_hash(password) if password else security.unusable_password_hash()
    user = user_model.User(
        name=name.strip(),
        email=email,
        username=username,
        password_hash=password_hash,
        bio=bio,
        social_links=social_links or {},
        google_id=google_id,
    )
    db.add(user)
    db.flush()
    return user


def commit_new_user(db: Session, user: user_model.User) -> user_model.User:
    try:
        db.commit()
    except IntegrityError:
        # A concurrent registration won the unique index.
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email or username already registered")
    db.refresh(user)
    return user


def register_user(db: Session, payload: auth_schemas.RegisterRequest) -> user_model.User:
    if not payload.name.strip() or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing fields")
    user = create_user(
        db,
        name=payload.name,
        email=payload.email,
        username=payload.username,
        password=payload.password,
        bio=payload.bio,
        social_links=payload.social_links,
    )
    if payload.invite_token:
        # Imported here: invite_service itself uses create_user.
        from huddle.services import invite_service

        invite = invite_service.get_active_invite(db, payload.invite_token)
        invite_service.redeem_invite(db, invite, user)
    logger.info("Registered user %s", user.username)
    return commit_new_user(db, user)


def authenticate_user(db: Session, email_or_username: str, password: str) -> user_model.User:
    if not email_or_username or not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing fields")
    identifier = email_or_username.strip().lower()
    user = db.query(user_model.User).filter(
        or_(user_model.User.email == identifier, user_model.User.username == identifier)
    ).first()
    if not user or not security.verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return user


def verify_google_id_token(token: str, db: Session, settings: Settings) -> user_model.User:
    try:
        idinfo = id_token.verify_oauth2_token(token, google_requests.Request(), settings.GOOGLE_CLIENT_ID)
    except ValueError as e:
        # Invalid token
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Google ID token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email = idinfo.get("email")
    google_id = idinfo.get("sub") # 'sub' is the standard field for Google ID
    name = idinfo.get("name") or (email.split("@")[0] if email else "")

    if not email or not google_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email or Google ID missing from token payload",
        )

    user = db.query(user_model.User).filter(user_model.User.google_id == google_id).first()
    if user is None:
        user = get_user_by_email(db, email)
        if user:
            # Same person signing in with Google for the first time: link the account.
            user.google_id = google_id
            if not user.profile_picture and idinfo.get("picture"):
                user.profile_picture = idinfo["picture"]
            db.commit()
            db.refresh(user)
        else:
            user = create_user(
                db,
                name=name,
                email=email,
                username=derive_username(db, email),
                password=None,
                google_id=google_id,
            )
            user.profile_picture = idinfo.get("picture")
            user = commit_new_user(db, user)
            logger.info("Provisioned user %s from Google sign-in", user.username)

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security.bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> user_model.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise credentials_exception
    token_data = security.verify_token(credentials.credentials, settings, credentials_exception)

    user = db.query(user_model.User).filter(user_model.User.id == token_data.user_id).first()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


def require_admin(current_user: user_model.User = Depends(get_current_user)) -> user_model.User:
    if current_user.role != user_model.Role.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


def require_organizer(current_user: user_model.User = Depends(get_current_user)) -> user_model.User:
    if current_user.role not in (user_model.Role.ORGANIZER.value, user_model.Role.ADMIN.value):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organizer access required")
    return current_user
