from typing import Callable

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from huddle.services import auth_service, otp_service
from huddle.core.config import Settings
from huddle.models import user as user_model
from huddle.schemas import otp_schemas
from huddle.api.dependencies import get_db, get_outbox_dispatch, get_settings

router = APIRouter()


@router.post("/send", response_model=otp_schemas.OTPSent, response_model_exclude_none=True)
async def send_otp_endpoint(
    request_in: otp_schemas.OTPSendRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    sent = otp_service.issue_otp(db=db, request=request_in, settings=settings)
    dispatch()
    return sent


@router.post("/resend", response_model=otp_schemas.OTPSent, response_model_exclude_none=True)
async def resend_otp_endpoint(
    request_in: otp_schemas.OTPSendRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    sent = otp_service.issue_otp(db=db, request=request_in, settings=settings, resend=True)
    dispatch()
    return sent


@router.post("/verify", response_model=otp_schemas.OTPVerified)
async def verify_otp_endpoint(
    request_in: otp_schemas.OTPVerifyRequest,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return otp_service.verify_otp(db=db, request=request_in)
