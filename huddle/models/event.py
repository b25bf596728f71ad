import datetime
import enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Table, Text
from sqlalchemy.orm import relationship

from huddle.core.database import Base

event_participants = Table(
    "event_participants",
    Base.metadata,
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class EventStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EDITED_PENDING = "edited_pending"


# Fields an organizer may edit; these make up the published data and the
# shadow copy held while an edit awaits review.
EDITABLE_FIELDS = (
    "title",
    "description",
    "date",
    "location",
    "google_location_link",
    "latitude",
    "longitude",
    "category",
    "tags",
    "photos",
    "cover_photo",
    "max_participants",
    "team_requirements",
    "price",
    "currency",
    "prize_pool",
    "pricing",
    "event_type",
    "virtual_meeting_link",
    "contact_email",
    "contact_phone",
    "website",
    "social_links",
)


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    date = Column(DateTime, nullable=False)
    location = Column(String, nullable=False)
    google_location_link = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    category = Column(String, default="General")
    tags = Column(JSON, default=list)
    photos = Column(JSON, default=list)
    cover_photo = Column(Text, nullable=True)
    max_participants = Column(Integer, default=0)
    team_requirements = Column(JSON, default=dict)
    price = Column(Float, default=0)
    currency = Column(String, default="USD")
    prize_pool = Column(JSON, default=dict)
    pricing = Column(JSON, nullable=True)
    event_type = Column(String, default="in-person")
    virtual_meeting_link = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    website = Column(String, nullable=True)
    social_links = Column(JSON, default=dict)

    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    views = Column(Integer, default=0, nullable=False)

    status = Column(String, default=EventStatus.PENDING.value, nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    submitted_for_review = Column(Boolean, default=False, nullable=False)
    is_edited = Column(Boolean, default=False, nullable=False)
    # Only set while status is edited_pending.
    pending_changes = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    organizer = relationship("User", foreign_keys=[organizer_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    participants = relationship("User", secondary=event_participants, order_by="User.id")
    edit_history = relationship(
        "EventEdit", back_populates="event", cascade="all, delete-orphan", order_by="EventEdit.id"
    )
    payments = relationship("Payment", back_populates="event", cascade="all, delete-orphan")

    def published_data(self) -> dict:
        return {field: getattr(self, field) for field in EDITABLE_FIELDS}

    @property
    def review(self) -> dict:
        if self.status == EventStatus.APPROVED.value:
            return {"state": "published", "data": self.published_data()}
        if self.status == EventStatus.EDITED_PENDING.value:
            return {
                "state": "pending_review",
                "base": self.published_data(),
                "proposed_changes": self.pending_changes,
            }
        return {
            "state": "unpublished",
            "status": self.status,
            "data": self.published_data(),
            "rejection_reason": self.rejection_reason,
        }


class EventEdit(Base):
    __tablename__ = "event_edits"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    edited_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    edited_at = Column(DateTime, default=datetime.datetime.utcnow)
    changes = Column(String, default="")
    previous_status = Column(String, nullable=False)

    event = relationship("Event", back_populates="edit_history")
