from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from huddle.services import auth_service, payment_service
from huddle.models import user as user_model
from huddle.schemas import payment_schemas
from huddle.api.dependencies import get_db

router = APIRouter()


@router.post("/create-payment", response_model=payment_schemas.PaymentCreated)
async def create_payment_endpoint(
    payment_in: payment_schemas.PaymentCreate,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    payment = payment_service.create_payment(db=db, payment_in=payment_in, current_user=current_user)
    return payment_schemas.PaymentCreated(
        payment_id=payment.id,
        amount=payment.amount,
        currency=payment.currency,
        status=payment.status,
        transaction_id=payment.transaction_id,
    )


@router.get("/user/payments", response_model=List[payment_schemas.PaymentRead])
async def my_payments_endpoint(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return payment_service.list_user_payments(db=db, user_id=current_user.id)


@router.get("/event/{event_id}", response_model=List[payment_schemas.PaymentRead])
async def event_payments_endpoint(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return payment_service.list_event_payments(db=db, event_id=event_id, current_user=current_user)


@router.get("/{payment_id}", response_model=payment_schemas.PaymentRead)
async def get_payment_endpoint(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return payment_service.get_payment(db=db, payment_id=payment_id, current_user=current_user)


@router.post("/{payment_id}/refund", response_model=payment_schemas.PaymentRead)
async def refund_payment_endpoint(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return payment_service.refund_payment(db=db, payment_id=payment_id, current_user=current_user)
