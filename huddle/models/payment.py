import datetime
import enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from huddle.core.database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    GOOGLE_PAY = "google_pay"
    STRIPE = "stripe"
    PAYPAL = "paypal"
    DUMMY = "dummy"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, default="USD")
    status = Column(String, default=PaymentStatus.PENDING.value, nullable=False)
    payment_method = Column(String, default=PaymentMethod.DUMMY.value, nullable=False)
    transaction_id = Column(String, nullable=True)
    payment_date = Column(DateTime, default=datetime.datetime.utcnow)
    refund_date = Column(DateTime, nullable=True)
    team_id = Column(Integer, nullable=True)
    team_role = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    event = relationship("Event", back_populates="payments")
    user = relationship("User")
