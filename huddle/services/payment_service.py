import datetime
import logging
import secrets
import string
import time
from typing import List

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from huddle.models import payment as payment_model
from huddle.models import user as user_model
from huddle.schemas import event_schemas, payment_schemas
from huddle.services import event_service

logger = logging.getLogger(__name__)

_TRANSACTION_ALPHABET = string.ascii_lowercase + string.digits


def dummy_transaction_id() -> str:
    suffix = "".join(secrets.choice(_TRANSACTION_ALPHABET) for _ in range(9))
    return f"dummy_{int(time.time() * 1000)}_{suffix}"


def calculate_amount(event, user: user_model.User, team_id, team_role) -> float:
    """Price for one registration.

    With a pricing table the team role picks the base price and a set
    gender price overrides it; otherwise the flat event price applies.
    """
    if not event.pricing:
        return float(event.price or 0)
    pricing = event_schemas.Pricing.model_validate(event.pricing)
    if team_id:
        amount = pricing.team_leader if team_role == "leader" else pricing.team_member
    else:
        amount = pricing.individual
    if user.gender == "male" and pricing.male_price > 0:
        amount = pricing.male_price
    elif user.gender == "female" and pricing.female_price > 0:
        amount = pricing.female_price
    return float(amount)


def create_payment(db: Session, payment_in: payment_schemas.PaymentCreate, current_user: user_model.User) -> payment_model.Payment:
    event = event_service.get_event(db, payment_in.event_id)
    payment = payment_model.Payment(
        event_id=event.id,
        user_id=current_user.id,
        amount=calculate_amount(event, current_user, payment_in.team_id, payment_in.team_role),
        currency=event.currency or "USD",
        payment_method=payment_in.payment_method.value,
        status=payment_model.PaymentStatus.PENDING.value,
        team_id=payment_in.team_id,
        team_role=payment_in.team_role,
        gender=current_user.gender,
    )
    if payment_in.payment_method == payment_model.PaymentMethod.DUMMY:
        # Simulated gateway: settles immediately.
        payment.status = payment_model.PaymentStatus.COMPLETED.value
        payment.transaction_id = dummy_transaction_id()
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s (%s %s) for event %s by user %s", payment.id, payment.amount, payment.currency, event.id, current_user.id)
    return payment


def get_payment(db: Session, payment_id: int, current_user: user_model.User) -> payment_model.Payment:
    payment = db.query(payment_model.Payment).filter(payment_model.Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    if current_user.id not in (payment.user_id, payment.event.organizer_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return payment


def list_event_payments(db: Session, event_id: int, current_user: user_model.User) -> List[payment_model.Payment]:
    event = event_service.get_event(db, event_id)
    if event.organizer_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only event organizer can view payments")
    return db.query(payment_model.Payment)\
        .filter(payment_model.Payment.event_id == event.id)\
        .order_by(payment_model.Payment.created_at.desc(), payment_model.Payment.id.desc())\
        .all()


def list_user_payments(db: Session, user_id: int) -> List[payment_model.Payment]:
    return db.query(payment_model.Payment)\
        .filter(payment_model.Payment.user_id == user_id)\
        .order_by(payment_model.Payment.created_at.desc(), payment_model.Payment.id.desc())\
        .all()


def refund_payment(db: Session, payment_id: int, current_user: user_model.User) -> payment_model.Payment:
    payment = db.query(payment_model.Payment).filter(payment_model.Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    if payment.event.organizer_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only event organizer can process refunds")
    if payment.status != payment_model.PaymentStatus.COMPLETED.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only completed payments can be refunded")
    payment.status = payment_model.PaymentStatus.REFUNDED.value
    payment.refund_date = datetime.datetime.utcnow()
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s refunded by user %s", payment.id, current_user.id)
    return payment
