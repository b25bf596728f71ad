from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from huddle.models.payment import PaymentMethod
from .user_schemas import UserSummary


class PaymentCreate(BaseModel):
    event_id: int
    team_id: Optional[int] = None
    team_role: Optional[str] = None # 'leader' or 'member'
    payment_method: PaymentMethod = PaymentMethod.DUMMY


class PaymentCreated(BaseModel):
    payment_id: int
    amount: float
    currency: str
    status: str
    transaction_id: Optional[str] = None


class PaymentRead(BaseModel):
    id: int
    event_id: int
    user: UserSummary
    amount: float
    currency: str
    status: str
    payment_method: str
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    refund_date: Optional[datetime] = None
    team_id: Optional[int] = None
    team_role: Optional[str] = None
    gender: Optional[str] = None

    class Config:
        from_attributes = True
