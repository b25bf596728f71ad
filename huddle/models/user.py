import datetime
import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from huddle.core.database import Base


class Role(str, enum.Enum):
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class OrganizerRequestStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, default=Role.USER.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    bio = Column(Text, nullable=True)
    social_links = Column(JSON, default=dict)
    profile_picture = Column(Text, nullable=True)
    mobile_number = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    google_id = Column(String, unique=True, index=True, nullable=True)

    # Organizer sub-profile
    organizer_request_status = Column(String, default=OrganizerRequestStatus.NONE.value, nullable=False)
    organizer_organization = Column(String, nullable=True)
    organizer_request_reason = Column(Text, nullable=True)
    organizer_request_date = Column(DateTime, nullable=True)
    organizer_rejection_reason = Column(Text, nullable=True)
    organizer_verified = Column(Boolean, default=False, nullable=False)
    organizer_approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    organizer_approved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    notifications = relationship(
        "Notification",
        foreign_keys="Notification.recipient_id",
        back_populates="recipient",
        cascade="all, delete-orphan",
    )
