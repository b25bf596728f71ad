import datetime
import logging
import re

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from huddle.core import security
from huddle.core.config import Settings
from huddle.models import otp as otp_model
from huddle.schemas import otp_schemas
from huddle.services import email_service, outbox_service

logger = logging.getLogger(__name__)

MOBILE_PATTERN = re.compile(r"^[0-9]{10,15}$")


def _scope_filters(event_id, team_id):
    return [
        otp_model.OTP.event_id == event_id if event_id is not None else otp_model.OTP.event_id.is_(None),
        otp_model.OTP.team_id == team_id if team_id is not None else otp_model.OTP.team_id.is_(None),
    ]


def issue_otp(db: Session, request: otp_schemas.OTPSendRequest, settings: Settings, resend: bool = False) -> otp_schemas.OTPSent:
    """Replaces any unused code for the number and purpose with a fresh one."""
    if not request.mobile_number or not request.purpose:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Mobile number and purpose are required")
    if not MOBILE_PATTERN.match(request.mobile_number):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a valid mobile number")

    db.query(otp_model.OTP).filter(
        otp_model.OTP.mobile_number == request.mobile_number,
        otp_model.OTP.purpose == request.purpose.value,
        otp_model.OTP.is_used.is_(False),
    ).delete(synchronize_session=False)

    code = security.generate_otp_code()
    db.add(otp_model.OTP(
        mobile_number=request.mobile_number,
        code=code,
        purpose=request.purpose.value,
        event_id=request.event_id,
        team_id=request.team_id,
        expires_at=datetime.datetime.utcnow() + otp_model.OTP_TTL,
    ))
    minutes = int(otp_model.OTP_TTL.total_seconds() // 60)
    outbox_service.enqueue_sms(
        db,
        request.mobile_number,
        email_service.render("otp.txt", code=code, minutes=minutes),
        code=code,
    )
    db.commit()
    logger.info("OTP %s for %s (%s)", "resent" if resend else "issued", request.mobile_number, request.purpose.value)

    return otp_schemas.OTPSent(
        message="OTP resent successfully" if resend else "OTP sent successfully",
        otp=code if settings.is_development else None,
        expires_in=f"{minutes} minutes",
    )


def verify_otp(db: Session, request: otp_schemas.OTPVerifyRequest) -> otp_schemas.OTPVerified:
    if not request.mobile_number or not request.otp or not request.purpose:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Mobile number, OTP, and purpose are required")

    otp = db.query(otp_model.OTP).filter(
        otp_model.OTP.mobile_number == request.mobile_number,
        otp_model.OTP.code == request.otp,
        otp_model.OTP.purpose == request.purpose.value,
        otp_model.OTP.is_used.is_(False),
        otp_model.OTP.expires_at > datetime.datetime.utcnow(),
        *_scope_filters(request.event_id, request.team_id),
    ).first()
    if not otp:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP")

    otp.is_used = True
    db.commit()
    return otp_schemas.OTPVerified(message="OTP verified successfully", verified=True)


def purge_expired(db: Session) -> int:
    removed = db.query(otp_model.OTP)\
        .filter(otp_model.OTP.expires_at <= datetime.datetime.utcnow())\
        .delete(synchronize_session=False)
    db.commit()
    return removed
