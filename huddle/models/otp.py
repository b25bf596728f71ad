import datetime
import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from huddle.core.database import Base

OTP_TTL = datetime.timedelta(minutes=10)


class OTPPurpose(str, enum.Enum):
    EVENT_JOIN = "event_join"
    TEAM_JOIN = "team_join"
    REGISTRATION = "registration"


class OTP(Base):
    __tablename__ = "otps"

    id = Column(Integer, primary_key=True, index=True)
    mobile_number = Column(String, nullable=False, index=True)
    code = Column(String(6), nullable=False)
    purpose = Column(String, nullable=False)
    event_id = Column(Integer, nullable=True)
    team_id = Column(Integer, nullable=True)
    is_used = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
