import datetime
import enum

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text

from huddle.core.database import Base


class Channel(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


class OutboxMessage(Base):
    __tablename__ = "outbox"

    id = Column(Integer, primary_key=True, index=True)
    channel = Column(String, nullable=False)
    recipient = Column(String, nullable=False)
    subject = Column(String, nullable=True)
    body = Column(Text, nullable=False)
    # Provider-specific values, e.g. the bare OTP code for template SMS APIs.
    extra = Column(JSON, nullable=True)
    status = Column(String, default=DeliveryStatus.PENDING.value, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    provider = Column(String, nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    sent_at = Column(DateTime, nullable=True)
