import datetime
import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from huddle.models import event as event_model
from huddle.models import invite as invite_model
from huddle.models import team as team_model
from huddle.models import user as user_model
from huddle.schemas import admin_schemas
from huddle.services import event_service, invite_service, otp_service, team_service, user_service

logger = logging.getLogger(__name__)

RECENT_REGISTRATION_WINDOW = datetime.timedelta(days=7)


def list_users(db: Session, skip: int = 0, limit: int = 100) -> List[user_model.User]:
    return db.query(user_model.User)\
        .order_by(user_model.User.created_at.desc(), user_model.User.id.desc())\
        .offset(skip)\
        .limit(limit)\
        .all()


def list_teams(db: Session, skip: int = 0, limit: int = 100) -> List[team_model.Team]:
    return db.query(team_model.Team)\
        .order_by(team_model.Team.created_at.desc(), team_model.Team.id.desc())\
        .offset(skip)\
        .limit(limit)\
        .all()


def list_invites(db: Session, skip: int = 0, limit: int = 100) -> List[invite_model.Invite]:
    return db.query(invite_model.Invite)\
        .order_by(invite_model.Invite.created_at.desc(), invite_model.Invite.id.desc())\
        .offset(skip)\
        .limit(limit)\
        .all()


def analytics(db: Session) -> admin_schemas.AdminAnalytics:
    now = datetime.datetime.utcnow()
    return admin_schemas.AdminAnalytics(
        total_users=db.query(user_model.User).count(),
        total_events=db.query(event_model.Event).count(),
        total_teams=db.query(team_model.Team).count(),
        pending_invites=db.query(invite_model.Invite).filter(
            invite_model.Invite.status == invite_model.InviteStatus.PENDING.value,
            invite_model.Invite.expires_at > now,
        ).count(),
        active_users=db.query(user_model.User).filter(user_model.User.is_active.is_(True)).count(),
        recent_registrations=db.query(user_model.User).filter(
            user_model.User.created_at >= now - RECENT_REGISTRATION_WINDOW,
        ).count(),
        pending_events=len(event_service.list_pending_events(db)),
        pending_organizer_requests=db.query(user_model.User).filter(
            user_model.User.organizer_request_status == user_model.OrganizerRequestStatus.PENDING.value,
        ).count(),
    )


def set_user_active(db: Session, user_id: int, active: bool, admin: user_model.User) -> user_model.User:
    user = user_service.get_user(db, user_id)
    if user.id == admin.id and not active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")
    user.is_active = active
    db.commit()
    db.refresh(user)
    logger.info("Admin %s %s user %s", admin.id, "activated" if active else "deactivated", user.id)
    return user


def change_role(db: Session, user_id: int, role: user_model.Role, admin: user_model.User) -> user_model.User:
    user = user_service.get_user(db, user_id)
    if user.id == admin.id and role != user_model.Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own admin role")
    user.role = role.value
    db.commit()
    db.refresh(user)
    logger.info("Admin %s set role of user %s to %s", admin.id, user.id, role.value)
    return user


def delete_user(db: Session, user_id: int, admin: user_model.User) -> None:
    user = user_service.get_user(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account here")
    user_service.delete_user_cascade(db, user)


def user_details(db: Session, user_id: int) -> admin_schemas.UserDetails:
    user = user_service.get_user(db, user_id)
    sent_invites = db.query(invite_model.Invite)\
        .filter(invite_model.Invite.invited_by_id == user.id)\
        .order_by(invite_model.Invite.created_at.desc(), invite_model.Invite.id.desc())\
        .all()
    return admin_schemas.UserDetails(
        user=user,
        events=event_service.list_organized_events(db, user.id),
        joined_events=event_service.list_joined_events(db, user.id),
        teams=team_service.get_user_teams(db, user.id),
        invites=sent_invites,
    )


def list_organizer_requests(db: Session) -> List[user_model.User]:
    return db.query(user_model.User)\
        .filter(user_model.User.organizer_request_status == user_model.OrganizerRequestStatus.PENDING.value)\
        .order_by(user_model.User.organizer_request_date.asc())\
        .all()


def _pending_request(db: Session, user_id: int) -> user_model.User:
    user = user_service.get_user(db, user_id)
    if user.organizer_request_status != user_model.OrganizerRequestStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No pending organizer request for this user")
    return user


def approve_organizer(db: Session, user_id: int, admin: user_model.User) -> user_model.User:
    user = _pending_request(db, user_id)
    user.organizer_request_status = user_model.OrganizerRequestStatus.APPROVED.value
    if user.role == user_model.Role.USER.value:
        user.role = user_model.Role.ORGANIZER.value
    user.organizer_verified = True
    user.organizer_approved_by_id = admin.id
    user.organizer_approved_at = datetime.datetime.utcnow()
    user.organizer_rejection_reason = None
    db.commit()
    db.refresh(user)
    logger.info("Admin %s approved organizer request of user %s", admin.id, user.id)
    return user


def reject_organizer(db: Session, user_id: int, reason: Optional[str], admin: user_model.User) -> user_model.User:
    if not reason or not reason.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rejection reason is required")
    user = _pending_request(db, user_id)
    user.organizer_request_status = user_model.OrganizerRequestStatus.REJECTED.value
    user.organizer_rejection_reason = reason.strip()
    user.organizer_verified = False
    db.commit()
    db.refresh(user)
    logger.info("Admin %s rejected organizer request of user %s", admin.id, user.id)
    return user


def purge_expired(db: Session) -> admin_schemas.PurgeResult:
    invites_removed = invite_service.purge_expired(db)
    otps_removed = otp_service.purge_expired(db)
    if invites_removed or otps_removed:
        logger.info("Purged %s expired invites and %s expired OTPs", invites_removed, otps_removed)
    return admin_schemas.PurgeResult(invites_removed=invites_removed, otps_removed=otps_removed)
