import datetime
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from huddle.models import notification as notification_model
from huddle.models import team as team_model
from huddle.models import user as user_model
from huddle.services import invite_service

FEED_LIMIT = 50


def _visible(query):
    now = datetime.datetime.utcnow()
    return query.filter(or_(
        notification_model.Notification.expires_at.is_(None),
        notification_model.Notification.expires_at > now,
    ))


def create_notification(
    db: Session,
    *,
    recipient_id: int,
    type: notification_model.NotificationType,
    title: str,
    message: str,
    sender_id: Optional[int] = None,
    team_id: Optional[int] = None,
    event_id: Optional[int] = None,
    invite_id: Optional[int] = None,
    expires_at: Optional[datetime.datetime] = None,
) -> notification_model.Notification:
    # Added to the caller's transaction; the caller commits.
    db_notification = notification_model.Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=type.value,
        title=title,
        message=message,
        team_id=team_id,
        event_id=event_id,
        invite_id=invite_id,
        expires_at=expires_at,
    )
    db.add(db_notification)
    return db_notification


def get_user_notifications(db: Session, user_id: int, limit: int = FEED_LIMIT) -> List[notification_model.Notification]:
    query = db.query(notification_model.Notification)\
        .filter(notification_model.Notification.recipient_id == user_id)
    return _visible(query)\
        .order_by(notification_model.Notification.created_at.desc(), notification_model.Notification.id.desc())\
        .limit(min(limit, FEED_LIMIT))\
        .all()


def count_unread(db: Session, user_id: int) -> int:
    query = db.query(notification_model.Notification).filter(
        notification_model.Notification.recipient_id == user_id,
        notification_model.Notification.is_read.is_(False),
    )
    return _visible(query).count()


def _get_own_notification(db: Session, notification_id: int, current_user_id: int) -> notification_model.Notification:
    db_notification = db.query(notification_model.Notification).filter(
        notification_model.Notification.id == notification_id,
        notification_model.Notification.recipient_id == current_user_id,
    ).first()
    if not db_notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return db_notification


def mark_notification_as_read(db: Session, notification_id: int, current_user_id: int) -> notification_model.Notification:
    db_notification = _get_own_notification(db, notification_id, current_user_id)
    if not db_notification.is_read:
        db_notification.is_read = True
        db.commit()
        db.refresh(db_notification)
    return db_notification


def mark_all_user_notifications_as_read(db: Session, current_user_id: int) -> int:
    updated = db.query(notification_model.Notification)\
        .filter(
            notification_model.Notification.recipient_id == current_user_id,
            notification_model.Notification.is_read.is_(False),
        )\
        .update({notification_model.Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return updated


def respond_to_invitation(
    db: Session,
    notification_id: int,
    current_user: user_model.User,
    accept: bool,
) -> Tuple[notification_model.Notification, Optional[team_model.Team]]:
    """Accepts or declines a team invitation from the feed.

    The invite is the source of truth; the invite service also resolves this
    notification, and both changes are committed together.
    """
    db_notification = db.query(notification_model.Notification).filter(
        notification_model.Notification.id == notification_id,
        notification_model.Notification.recipient_id == current_user.id,
        notification_model.Notification.type == notification_model.NotificationType.TEAM_INVITATION.value,
        notification_model.Notification.is_accepted.is_(None),
        notification_model.Notification.invite_id.isnot(None),
    ).first()
    if not db_notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found or already processed")

    team = invite_service.respond_to_invite(db, db_notification.invite_id, current_user, accept)
    db.commit()
    db.refresh(db_notification)
    if team is not None:
        db.refresh(team)
    return db_notification, team
