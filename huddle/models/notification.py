import datetime
import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from huddle.core.database import Base


class NotificationType(str, enum.Enum):
    TEAM_INVITATION = "team_invitation"
    EVENT_INVITATION = "event_invitation"
    TEAM_JOIN = "team_join"
    EVENT_JOIN = "event_join"
    EVENT_REMINDER = "event_reminder"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    team_id = Column(Integer, nullable=True)
    event_id = Column(Integer, nullable=True)
    invite_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    is_accepted = Column(Boolean, nullable=True)  # None = awaiting a response
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    recipient = relationship("User", foreign_keys=[recipient_id], back_populates="notifications")
    sender = relationship("User", foreign_keys=[sender_id])
