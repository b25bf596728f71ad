import datetime
import logging
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from huddle.core import security
from huddle.models import event as event_model
from huddle.models import invite as invite_model
from huddle.models import notification as notification_model
from huddle.models import payment as payment_model
from huddle.models import team as team_model
from huddle.models import user as user_model
from huddle.schemas import user_schemas
from huddle.services import auth_service

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


def get_user(db: Session, user_id: int) -> user_model.User:
    user = db.query(user_model.User).filter(user_model.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def update_profile(db: Session, user: user_model.User, profile_in: user_schemas.ProfileUpdate) -> user_model.User:
    changes = profile_in.model_dump(exclude_unset=True)
    username = changes.pop("username", None)
    if username and username.lower() != user.username:
        problem = auth_service.username_problem(username)
        if problem:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)
        if auth_service.get_user_by_username(db, username):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")
        user.username = username.lower()

    name = changes.pop("name", None)
    if name is not None:
        if not name.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name cannot be empty")
        user.name = name.strip()
    for field, value in changes.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: user_model.User, password_in: user_schemas.PasswordChange) -> None:
    if not password_in.current_password or not password_in.new_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current and new password are required")
    if not security.verify_password(password_in.current_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")
    user.password_hash = security.get_password_hash(password_in.new_password)
    db.commit()


def update_profile_picture(db: Session, user: user_model.User, picture_in: user_schemas.ProfilePictureUpdate) -> user_model.User:
    if not picture_in.profile_picture:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Profile picture is required")
    user.profile_picture = picture_in.profile_picture
    db.commit()
    db.refresh(user)
    return user


def delete_user_cascade(db: Session, user: user_model.User) -> None:
    """Deletes a user together with what they own.

    Organized events and owned teams go (invites follow their team), the
    user leaves every team and event, and invites they sent are removed.
    References kept for audit are nulled.
    """
    user_id = user.id
    for event in db.query(event_model.Event).filter(event_model.Event.organizer_id == user_id).all():
        db.delete(event)
    for team in db.query(team_model.Team).filter(team_model.Team.owner_id == user_id).all():
        db.delete(team)
    db.flush()

    db.execute(team_model.team_members.delete().where(team_model.team_members.c.user_id == user_id))
    db.execute(event_model.event_participants.delete().where(event_model.event_participants.c.user_id == user_id))
    db.query(invite_model.Invite).filter(invite_model.Invite.invited_by_id == user_id).delete(synchronize_session=False)
    db.query(payment_model.Payment).filter(payment_model.Payment.user_id == user_id).delete(synchronize_session=False)

    for team in db.query(team_model.Team).filter(team_model.Team.leader_id == user_id).all():
        team.leader_id = team.owner_id
    db.query(event_model.Event).filter(event_model.Event.approved_by_id == user_id)\
        .update({event_model.Event.approved_by_id: None}, synchronize_session=False)
    db.query(event_model.EventEdit).filter(event_model.EventEdit.edited_by_id == user_id)\
        .update({event_model.EventEdit.edited_by_id: None}, synchronize_session=False)
    db.query(notification_model.Notification).filter(notification_model.Notification.sender_id == user_id)\
        .update({notification_model.Notification.sender_id: None}, synchronize_session=False)
    db.query(user_model.User).filter(user_model.User.organizer_approved_by_id == user_id)\
        .update({user_model.User.organizer_approved_by_id: None}, synchronize_session=False)

    db.delete(user)
    db.commit()
    logger.info("User %s deleted with owned events and teams", user_id)


def delete_account(db: Session, user: user_model.User, password: str) -> None:
    if not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required to delete account")
    if not security.verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Password is incorrect")
    delete_user_cascade(db, user)


def search_by_username(db: Session, query: str, current_user: user_model.User) -> List[user_model.User]:
    return db.query(user_model.User)\
        .filter(
            func.lower(user_model.User.username).like(f"%{query.lower()}%"),
            user_model.User.id != current_user.id,
        )\
        .order_by(user_model.User.username)\
        .limit(SEARCH_LIMIT)\
        .all()


def request_organizer(db: Session, user: user_model.User, request_in: user_schemas.OrganizerRequestCreate) -> user_model.User:
    if user.role in (user_model.Role.ORGANIZER.value, user_model.Role.ADMIN.value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You already have organizer access")
    if user.organizer_request_status == user_model.OrganizerRequestStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You already have a pending organizer request")
    if not request_in.reason.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A reason is required")

    user.organizer_request_status = user_model.OrganizerRequestStatus.PENDING.value
    user.organizer_organization = request_in.organization
    user.organizer_request_reason = request_in.reason.strip()
    user.organizer_request_date = datetime.datetime.utcnow()
    user.organizer_rejection_reason = None
    if request_in.contact_phone and not user.mobile_number:
        user.mobile_number = request_in.contact_phone
    db.commit()
    db.refresh(user)
    logger.info("User %s requested organizer access", user.id)
    return user


def organizer_request_status(user: user_model.User) -> user_schemas.OrganizerRequestStatusRead:
    return user_schemas.OrganizerRequestStatusRead(
        has_requested=user.organizer_request_status != user_model.OrganizerRequestStatus.NONE.value,
        is_organizer=user.role in (user_model.Role.ORGANIZER.value, user_model.Role.ADMIN.value),
        status=user.organizer_request_status,
        organization=user.organizer_organization,
        reason=user.organizer_request_reason,
        request_date=user.organizer_request_date,
        rejection_reason=user.organizer_rejection_reason,
    )
