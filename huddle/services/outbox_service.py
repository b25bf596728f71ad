import datetime
import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, sessionmaker

from huddle.core.config import Settings
from huddle.core.exceptions import DeliveryError
from huddle.models import outbox as outbox_model
from huddle.services import email_service, sms_service

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


def enqueue_email(db: Session, to: str, subject: str, template_name: str, **context) -> outbox_model.OutboxMessage:
    """Queues an email in the caller's transaction; nothing is sent yet."""
    message = outbox_model.OutboxMessage(
        channel=outbox_model.Channel.EMAIL.value,
        recipient=to,
        subject=subject,
        body=email_service.render(template_name, **context),
    )
    db.add(message)
    return message


def enqueue_sms(db: Session, mobile_number: str, body: str, code: Optional[str] = None) -> outbox_model.OutboxMessage:
    message = outbox_model.OutboxMessage(
        channel=outbox_model.Channel.SMS.value,
        recipient=mobile_number,
        body=body,
        extra={"code": code} if code else None,
    )
    db.add(message)
    return message


def deliver(db: Session, message: outbox_model.OutboxMessage, settings: Settings) -> outbox_model.OutboxMessage:
    message.attempts += 1
    try:
        if message.channel == outbox_model.Channel.EMAIL.value:
            provider = email_service.send_email(settings, message.recipient, message.subject or "", message.body)
        else:
            code = (message.extra or {}).get("code")
            provider = sms_service.send_sms(settings, message.recipient, message.body, code=code)
    except DeliveryError as e:
        logger.error("Outbox message %s (%s to %s) failed: %s", message.id, message.channel, message.recipient, e)
        message.status = outbox_model.DeliveryStatus.FAILED.value
        message.last_error = str(e)
    else:
        message.status = outbox_model.DeliveryStatus.SENT.value
        message.provider = provider
        message.last_error = None
        message.sent_at = datetime.datetime.utcnow()
    db.commit()
    return message


def _claimable():
    return or_(
        outbox_model.OutboxMessage.status == outbox_model.DeliveryStatus.PENDING.value,
        and_(
            outbox_model.OutboxMessage.status == outbox_model.DeliveryStatus.FAILED.value,
            outbox_model.OutboxMessage.attempts < MAX_ATTEMPTS,
        ),
    )


def claim(db: Session, message_id: int, condition) -> bool:
    """Moves a message to SENDING if it still matches condition.

    The conditional update is the only way a message enters SENDING, so at
    most one caller gets to send it.
    """
    claimed = db.query(outbox_model.OutboxMessage)\
        .filter(outbox_model.OutboxMessage.id == message_id, condition)\
        .update({outbox_model.OutboxMessage.status: outbox_model.DeliveryStatus.SENDING.value}, synchronize_session=False)
    db.commit()
    return claimed == 1


def deliver_pending(session_factory: sessionmaker, settings: Settings) -> int:
    """Delivers queued messages in a fresh session. Runs after the response.

    Failed messages are picked up again until they reach MAX_ATTEMPTS; after
    that only an explicit retry sends them. Messages claimed by another run
    are skipped.
    """
    db = session_factory()
    try:
        candidate_ids = [
            row.id for row in db.query(outbox_model.OutboxMessage.id)
            .filter(_claimable())
            .order_by(outbox_model.OutboxMessage.id)
            .all()
        ]
        delivered = 0
        for message_id in candidate_ids:
            if not claim(db, message_id, _claimable()):
                logger.debug("Outbox message %s already claimed", message_id)
                continue
            message = db.query(outbox_model.OutboxMessage).filter(outbox_model.OutboxMessage.id == message_id).one()
            deliver(db, message, settings)
            delivered += 1
        return delivered
    finally:
        db.close()


def list_messages(db: Session, status_filter: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[outbox_model.OutboxMessage]:
    query = db.query(outbox_model.OutboxMessage)
    if status_filter:
        query = query.filter(outbox_model.OutboxMessage.status == status_filter)
    return query.order_by(outbox_model.OutboxMessage.created_at.desc(), outbox_model.OutboxMessage.id.desc())\
        .offset(skip)\
        .limit(limit)\
        .all()


def retry(db: Session, message_id: int, settings: Settings) -> outbox_model.OutboxMessage:
    message = db.query(outbox_model.OutboxMessage).filter(outbox_model.OutboxMessage.id == message_id).first()
    if not message:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    if message.status == outbox_model.DeliveryStatus.SENT.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message was already sent")
    retryable = outbox_model.OutboxMessage.status.in_([
        outbox_model.DeliveryStatus.PENDING.value,
        outbox_model.DeliveryStatus.FAILED.value,
    ])
    if not claim(db, message.id, retryable):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is already being sent")
    db.refresh(message)
    if message.attempts >= MAX_ATTEMPTS:
        logger.warning("Retrying outbox message %s after %s attempts", message.id, message.attempts)
    return deliver(db, message, settings)
