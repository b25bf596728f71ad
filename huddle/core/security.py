import secrets
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi.security import HTTPBearer

from huddle.core.config import Settings
from huddle.schemas import auth_schemas

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)
    return encoded_jwt


def issue_token_for(user, settings: Settings) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role}, settings)


def verify_token(token: str, settings: Settings, credentials_exception) -> auth_schemas.TokenData:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
        subject: Optional[str] = payload.get("sub")
        if subject is None or not subject.isdigit():
            raise credentials_exception
        token_data = auth_schemas.TokenData(user_id=int(subject), role=payload.get("role"))
    except JWTError:
        raise credentials_exception
    return token_data


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def unusable_password_hash() -> str:
    # Hash of a random secret nobody knows; login with any password fails.
    return get_password_hash(secrets.token_urlsafe(32))


def generate_token_hex(nbytes: int = 32) -> str:
    return secrets.token_hex(nbytes)


def generate_otp_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"
