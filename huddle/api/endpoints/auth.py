from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from huddle.services import auth_service
from huddle.core import security
from huddle.core.config import Settings
from huddle.models import user as user_model
from huddle.schemas import auth_schemas, user_schemas
from huddle.api.dependencies import get_db, get_settings

router = APIRouter()


@router.post("/register", response_model=auth_schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    payload: auth_schemas.RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = auth_service.register_user(db=db, payload=payload)
    return {"token": security.issue_token_for(user, settings), "user": user}


@router.post("/login", response_model=auth_schemas.AuthResponse)
async def login_endpoint(
    payload: auth_schemas.LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = auth_service.authenticate_user(db=db, email_or_username=payload.email_or_username, password=payload.password)
    return {"token": security.issue_token_for(user, settings), "user": user}


@router.post("/google", response_model=auth_schemas.AuthResponse)
async def login_with_google(
    payload: auth_schemas.GoogleLoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = auth_service.verify_google_id_token(token=payload.token, db=db, settings=settings)
    # The 'sub' claim carries the user id; the role rides along for the client.
    return {"token": security.issue_token_for(user, settings), "user": user}


@router.get("/check-username/{username}", response_model=auth_schemas.UsernameAvailability)
async def check_username_endpoint(username: str, db: Session = Depends(get_db)):
    return auth_service.check_username(db=db, username=username)


@router.get("/me", response_model=user_schemas.UserRead)
async def read_current_user(current_user: user_model.User = Depends(auth_service.get_current_user)):
    return current_user
