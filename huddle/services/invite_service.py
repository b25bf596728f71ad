import datetime
import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from huddle.core import security
from huddle.core.config import Settings
from huddle.models import invite as invite_model
from huddle.models import notification as notification_model
from huddle.models import team as team_model
from huddle.models import user as user_model
from huddle.schemas import invite_schemas, team_schemas
from huddle.services import auth_service, outbox_service, team_service

logger = logging.getLogger(__name__)

INVITE_NOT_FOUND = "Invitation not found or expired"


def _now() -> datetime.datetime:
    return datetime.datetime.utcnow()


def invite_url(settings: Settings, token: str) -> str:
    return f"{settings.CLIENT_ORIGIN.rstrip('/')}/invite/{token}"


def get_active_invite(db: Session, token: str) -> invite_model.Invite:
    """Resolves a token to a pending, unexpired invite or raises 404."""
    invite = db.query(invite_model.Invite).filter(
        invite_model.Invite.token == token,
        invite_model.Invite.status == invite_model.InviteStatus.PENDING.value,
        invite_model.Invite.expires_at > _now(),
    ).first()
    if not invite:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INVITE_NOT_FOUND)
    return invite


def find_active_invite(db: Session, team_id: int, email: str) -> Optional[invite_model.Invite]:
    return db.query(invite_model.Invite).filter(
        invite_model.Invite.team_id == team_id,
        invite_model.Invite.email == email.lower(),
        invite_model.Invite.status == invite_model.InviteStatus.PENDING.value,
        invite_model.Invite.expires_at > _now(),
    ).first()


def _get_invite(db: Session, invite_id: int) -> invite_model.Invite:
    invite = db.query(invite_model.Invite).filter(invite_model.Invite.id == invite_id).first()
    if not invite:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    return invite


def _linked_notifications(db: Session, invite: invite_model.Invite) -> List[notification_model.Notification]:
    return db.query(notification_model.Notification).filter(
        notification_model.Notification.invite_id == invite.id,
        notification_model.Notification.type == notification_model.NotificationType.TEAM_INVITATION.value,
        notification_model.Notification.is_accepted.is_(None),
    ).all()


def _queue_invite_email(
    db: Session,
    invite: invite_model.Invite,
    team: team_model.Team,
    inviter: user_model.User,
    settings: Settings,
    reason: Optional[str] = None,
) -> None:
    outbox_service.enqueue_email(
        db,
        invite.email,
        f"You're invited to join {team.name} on Huddle",
        "team_invite.html",
        inviter_name=inviter.name,
        team_name=team.name,
        reason=reason,
        invite_url=invite_url(settings, invite.token),
        expires_in_days=invite_model.INVITE_TTL.days,
    )


def create_invite(
    db: Session,
    team_id: int,
    invite_in: invite_schemas.InviteCreate,
    current_user: user_model.User,
    settings: Settings,
) -> invite_model.Invite:
    team = team_service.get_owned_team(db, team_id, current_user, "send invitations")
    email = invite_in.email.lower()

    invitee = auth_service.get_user_by_email(db, email)
    if invitee and team.has_member(invitee.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already a member of this team")
    if find_active_invite(db, team.id, email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="An active invitation already exists for this email")

    now = _now()
    invite = invite_model.Invite(
        team_id=team.id,
        email=email,
        invited_name=invite_in.name or (invitee.name if invitee else None),
        token=security.generate_token_hex(32),
        status=invite_model.InviteStatus.PENDING.value,
        expires_at=now + invite_model.INVITE_TTL,
        invited_by_id=current_user.id,
        last_sent_at=now,
    )
    db.add(invite)
    db.flush()

    if invitee:
        message = f"{current_user.name} has invited you to join the team \"{team.name}\""
        if invite_in.reason:
            message = f"{message}: {invite_in.reason}"
        db.add(notification_model.Notification(
            recipient_id=invitee.id,
            sender_id=current_user.id,
            type=notification_model.NotificationType.TEAM_INVITATION.value,
            title="Team Invitation",
            message=message,
            team_id=team.id,
            invite_id=invite.id,
            expires_at=invite.expires_at,
        ))

    _queue_invite_email(db, invite, team, current_user, settings, reason=invite_in.reason)
    db.commit()
    db.refresh(invite)
    logger.info("User %s invited %s to team %s", current_user.id, email, team.id)
    return invite


def invite_by_username(
    db: Session,
    team_id: int,
    payload: team_schemas.InviteByUsernameRequest,
    current_user: user_model.User,
    settings: Settings,
) -> invite_model.Invite:
    invitee = auth_service.get_user_by_username(db, payload.username.strip())
    if not invitee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if invitee.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot invite yourself")
    invite_in = invite_schemas.InviteCreate(email=invitee.email, name=invitee.name, reason=payload.reason)
    return create_invite(db, team_id, invite_in, current_user, settings)


def redeem_invite(db: Session, invite: invite_model.Invite, user: user_model.User) -> team_model.Team:
    """Adds `user` to the invite's team and closes the invite.

    Does not commit: the caller's transaction decides whether the whole
    redemption sticks.
    """
    if user.email != invite.email:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This invitation was sent to a different email address")
    if not team_service.add_member(db, invite.team_id, user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You are already a member of this team")

    invite.status = invite_model.InviteStatus.ACCEPTED.value
    invite.accepted_at = _now()
    for notification in _linked_notifications(db, invite):
        notification.is_accepted = True
        notification.is_read = True
    logger.info("User %s joined team %s through invite %s", user.id, invite.team_id, invite.id)
    return invite.team


def decline_invite(db: Session, invite: invite_model.Invite, user: user_model.User) -> None:
    if user.email != invite.email:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This invitation was sent to a different email address")
    invite.status = invite_model.InviteStatus.DECLINED.value
    invite.declined_at = _now()
    for notification in _linked_notifications(db, invite):
        notification.is_accepted = False
        notification.is_read = True


def accept_invite(
    db: Session,
    token: str,
    payload: invite_schemas.InviteAcceptRequest,
) -> Tuple[user_model.User, team_model.Team]:
    """Public redemption: signs the invitee in, creating the account if needed."""
    invite = get_active_invite(db, token)
    user = auth_service.get_user_by_email(db, invite.email)
    if user:
        if not payload.password or not security.verify_password(payload.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Sign in with the password of the invited account",
            )
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    else:
        if not payload.password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required")
        name = payload.name or invite.invited_name or invite.email.split("@")[0]
        user = auth_service.create_user(
            db,
            name=name,
            email=invite.email,
            username=payload.username or auth_service.derive_username(db, invite.email),
            password=payload.password,
            bio=payload.bio,
            social_links=payload.social_links,
        )

    team = redeem_invite(db, invite, user)
    user = auth_service.commit_new_user(db, user)
    return user, team


def join_with_invite(
    db: Session,
    token: str,
    payload: invite_schemas.InviteJoinRequest,
    current_user: user_model.User,
) -> team_model.Team:
    invite = get_active_invite(db, token)
    team = redeem_invite(db, invite, current_user)
    if payload.bio is not None:
        current_user.bio = payload.bio
    if payload.social_links is not None:
        current_user.social_links = payload.social_links
    db.commit()
    db.refresh(team)
    return team


def respond_to_invite(db: Session, invite_id: int, user: user_model.User, accept: bool) -> Optional[team_model.Team]:
    """Accepts or declines the invite behind a team_invitation notification."""
    invite = db.query(invite_model.Invite).filter(
        invite_model.Invite.id == invite_id,
        invite_model.Invite.status == invite_model.InviteStatus.PENDING.value,
        invite_model.Invite.expires_at > _now(),
    ).first()
    if not invite:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INVITE_NOT_FOUND)
    if accept:
        return redeem_invite(db, invite, user)
    decline_invite(db, invite, user)
    return None


def list_team_invites(db: Session, team_id: int, current_user: user_model.User) -> List[invite_model.Invite]:
    team = team_service.get_owned_team(db, team_id, current_user, "view invitations")
    return db.query(invite_model.Invite).filter(
        invite_model.Invite.team_id == team.id,
        invite_model.Invite.status == invite_model.InviteStatus.PENDING.value,
        invite_model.Invite.expires_at > _now(),
    ).order_by(invite_model.Invite.created_at.desc(), invite_model.Invite.id.desc()).all()


def list_invites_for_email(db: Session, email: str) -> List[invite_model.Invite]:
    return db.query(invite_model.Invite).filter(
        invite_model.Invite.email == email.lower(),
        invite_model.Invite.status == invite_model.InviteStatus.PENDING.value,
        invite_model.Invite.expires_at > _now(),
    ).order_by(invite_model.Invite.created_at.desc(), invite_model.Invite.id.desc()).all()


def resend_invite(db: Session, invite_id: int, current_user: user_model.User, settings: Settings) -> invite_model.Invite:
    invite = _get_invite(db, invite_id)
    team = team_service.get_owned_team(db, invite.team_id, current_user, "resend invitations")
    if invite.status != invite_model.InviteStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invitation is already {invite.status}")

    now = _now()
    invite.expires_at = now + invite_model.INVITE_TTL
    invite.last_sent_at = now
    for notification in _linked_notifications(db, invite):
        notification.expires_at = invite.expires_at
    _queue_invite_email(db, invite, team, current_user, settings)
    db.commit()
    db.refresh(invite)
    return invite


def withdraw_invite(db: Session, invite_id: int, current_user: user_model.User) -> invite_model.Invite:
    invite = _get_invite(db, invite_id)
    if current_user.id not in (invite.invited_by_id, invite.team.owner_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to withdraw this invitation")
    if invite.status != invite_model.InviteStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invitation is already {invite.status}")

    invite.status = invite_model.InviteStatus.WITHDRAWN.value
    for notification in _linked_notifications(db, invite):
        db.delete(notification)
    db.commit()
    db.refresh(invite)
    logger.info("Invite %s withdrawn by user %s", invite.id, current_user.id)
    return invite


def purge_expired(db: Session) -> int:
    """Deletes pending invites past their expiry. Reads never depend on it."""
    removed = db.query(invite_model.Invite).filter(
        invite_model.Invite.status == invite_model.InviteStatus.PENDING.value,
        invite_model.Invite.expires_at <= _now(),
    ).delete(synchronize_session=False)
    db.commit()
    return removed
