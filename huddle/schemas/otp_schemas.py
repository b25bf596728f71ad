from typing import Optional

from pydantic import BaseModel

from huddle.models.otp import OTPPurpose


class OTPSendRequest(BaseModel):
    mobile_number: Optional[str] = None
    purpose: Optional[OTPPurpose] = None
    event_id: Optional[int] = None
    team_id: Optional[int] = None


class OTPVerifyRequest(OTPSendRequest):
    otp: Optional[str] = None


class OTPSent(BaseModel):
    message: str
    # Echoed back only in development.
    otp: Optional[str] = None
    expires_in: str = "10 minutes"


class OTPVerified(BaseModel):
    message: str
    verified: bool
