import datetime
import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from huddle.core.config import Settings
from huddle.core.database import add_to_set
from huddle.models import event as event_model
from huddle.models import notification as notification_model
from huddle.models import payment as payment_model
from huddle.models import user as user_model
from huddle.schemas import event_schemas
from huddle.services import notification_service, outbox_service, team_service

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10

# Labels used in the edit history, in display order.
CHANGE_LABELS = {
    "title": "Title",
    "description": "Description",
    "date": "Date",
    "location": "Location",
    "category": "Category",
    "max_participants": "Max Participants",
    "price": "Price",
    "team_requirements": "Team Requirements",
    "prize_pool": "Prize Pool",
    "pricing": "Pricing",
}


def event_url(settings: Settings, event_id: int) -> str:
    return f"{settings.CLIENT_ORIGIN.rstrip('/')}/events/{event_id}"


def validate_event_data(data: event_schemas.EventData) -> None:
    """Rejects saves that break the quota or prize pool rules with a 400."""
    team_size = data.team_requirements.team_size
    if data.team_requirements.girls_required < 0 or data.team_requirements.boys_required < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Girls and boys requirements cannot be negative")
    if data.max_participants and team_size > data.max_participants:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Team size ({team_size}) cannot exceed maximum participants ({data.max_participants})",
        )

    prize_pool = data.prize_pool
    prizes = [prize_pool.first_place, prize_pool.second_place, prize_pool.third_place, *prize_pool.consolation_prizes]
    if any(prize < 0 for prize in prizes):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Prize amounts cannot be negative")
    if prize_pool.total_amount and prize_pool.distributed > prize_pool.total_amount:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Total prize distribution ({prize_pool.distributed}) cannot exceed total prize pool ({prize_pool.total_amount})",
        )


def get_event(db: Session, event_id: int) -> event_model.Event:
    event = db.query(event_model.Event).filter(event_model.Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


def get_organized_event(db: Session, event_id: int, current_user: user_model.User) -> event_model.Event:
    event = get_event(db, event_id)
    if event.organizer_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the organizer can modify this event")
    return event


def create_event(db: Session, event_in: event_schemas.EventCreate, organizer: user_model.User) -> event_model.Event:
    if not event_in.title.strip() or not event_in.location.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and location are required")
    validate_event_data(event_in)
    db_event = event_model.Event(
        **event_in.model_dump(),
        organizer_id=organizer.id,
        status=event_model.EventStatus.PENDING.value,
    )
    db.add(db_event)
    db.commit()
    db.refresh(db_event)
    logger.info("Event %s created by user %s", db_event.id, organizer.id)
    return db_event


def list_public_events(db: Session) -> List[event_model.Event]:
    # An edit under review leaves the published version live.
    return db.query(event_model.Event)\
        .filter(event_model.Event.status.in_([
            event_model.EventStatus.APPROVED.value,
            event_model.EventStatus.EDITED_PENDING.value,
        ]))\
        .order_by(event_model.Event.date.asc())\
        .all()


def list_all_events(db: Session, skip: int = 0, limit: int = 100) -> List[event_model.Event]:
    return db.query(event_model.Event)\
        .order_by(event_model.Event.created_at.desc(), event_model.Event.id.desc())\
        .offset(skip)\
        .limit(limit)\
        .all()


def list_pending_events(db: Session) -> List[event_model.Event]:
    return db.query(event_model.Event)\
        .filter(event_model.Event.status.in_([
            event_model.EventStatus.PENDING.value,
            event_model.EventStatus.EDITED_PENDING.value,
        ]))\
        .order_by(event_model.Event.created_at.asc(), event_model.Event.id.asc())\
        .all()


def list_organized_events(db: Session, user_id: int) -> List[event_model.Event]:
    return db.query(event_model.Event)\
        .filter(event_model.Event.organizer_id == user_id)\
        .order_by(event_model.Event.created_at.desc(), event_model.Event.id.desc())\
        .all()


def list_joined_events(db: Session, user_id: int) -> List[event_model.Event]:
    return db.query(event_model.Event)\
        .join(event_model.event_participants, event_model.event_participants.c.event_id == event_model.Event.id)\
        .filter(event_model.event_participants.c.user_id == user_id)\
        .order_by(event_model.Event.date.asc())\
        .all()


def _changed_labels(current: dict, proposed: dict) -> str:
    labels = [label for field, label in CHANGE_LABELS.items() if current.get(field) != proposed.get(field)]
    return ", ".join(labels)


def update_event(
    db: Session,
    event_id: int,
    event_in: event_schemas.EventUpdate,
    current_user: user_model.User,
) -> event_model.Event:
    """Applies an organizer's edit.

    Unpublished events change in place. A published event keeps serving its
    current data while the edit waits for an admin in `pending_changes`;
    further edits before the review refine that same shadow copy.
    """
    event = get_organized_event(db, event_id, current_user)
    changes = event_in.model_dump(exclude_unset=True, exclude_none=True)

    if event.status in (event_model.EventStatus.APPROVED.value, event_model.EventStatus.EDITED_PENDING.value):
        base = event_schemas.EventData.model_validate(event.published_data())
        current = event.pending_changes or base.model_dump(mode="json")
        proposed = event_schemas.EventData.model_validate({**current, **changes})
        validate_event_data(proposed)

        db.add(event_model.EventEdit(
            event_id=event.id,
            edited_by_id=current_user.id,
            changes=_changed_labels(base.model_dump(mode="json"), proposed.model_dump(mode="json")),
            previous_status=event.status,
        ))
        event.pending_changes = proposed.model_dump(mode="json")
        event.status = event_model.EventStatus.EDITED_PENDING.value
        event.is_edited = True
        event.approved_by_id = None
        event.approved_at = None
        logger.info("Event %s edited while published; awaiting review", event.id)
    else:
        merged = event_schemas.EventData.model_validate({**event.published_data(), **changes})
        validate_event_data(merged)
        for field, value in merged.model_dump().items():
            setattr(event, field, value)

    db.commit()
    db.refresh(event)
    return event


def delete_event(db: Session, event_id: int, current_user: user_model.User) -> None:
    event = get_organized_event(db, event_id, current_user)
    db.delete(event)
    db.commit()
    logger.info("Event %s deleted by user %s", event_id, current_user.id)


def join_event(
    db: Session,
    event_id: int,
    join_in: event_schemas.JoinEventRequest,
    current_user: user_model.User,
    settings: Settings,
) -> event_schemas.JoinEventResult:
    event = get_event(db, event_id)
    if event.organizer_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Organizer cannot join their own event")

    team = None
    if join_in.team_id is not None:
        team = team_service.get_team(db, join_in.team_id)
        if not team.has_member(current_user.id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only join with teams you are a member of")
        user_ids = [member.id for member in team.members if member.id != event.organizer_id]
    else:
        user_ids = [current_user.id]

    added = 0
    for user_id in user_ids:
        if add_to_set(db, event_model.event_participants, event_id=event.id, user_id=user_id):
            added += 1

    if added:
        join_type = "Team" if team else "Individual"
        notification_service.create_notification(
            db,
            recipient_id=event.organizer_id,
            sender_id=current_user.id,
            type=notification_model.NotificationType.EVENT_JOIN,
            title="New participant",
            message=f"{team.name if team else current_user.name} joined \"{event.title}\"",
            team_id=team.id if team else None,
            event_id=event.id,
        )
        participant_count = db.query(event_model.event_participants)\
            .filter(event_model.event_participants.c.event_id == event.id)\
            .count()
        outbox_service.enqueue_email(
            db,
            event.organizer.email,
            f"New {join_type.lower()} joined {event.title}",
            "event_join.html",
            join_type=join_type,
            team_name=team.name if team else None,
            participant_name=current_user.name,
            event_title=event.title,
            participant_count=participant_count,
            event_url=event_url(settings, event.id),
        )
    db.commit()
    db.refresh(event)

    who = f"Team \"{team.name}\"" if team else current_user.name
    return event_schemas.JoinEventResult(
        message=f"{who} has joined the event successfully",
        event_id=event.id,
        title=event.title,
        participants=len(event.participants),
    )


def leave_event(db: Session, event_id: int, current_user: user_model.User) -> event_model.Event:
    event = get_event(db, event_id)
    db.execute(
        event_model.event_participants.delete().where(
            event_model.event_participants.c.event_id == event.id,
            event_model.event_participants.c.user_id == current_user.id,
        )
    )
    db.commit()
    db.refresh(event)
    return event


def track_view(db: Session, event_id: int) -> int:
    event = get_event(db, event_id)
    db.query(event_model.Event)\
        .filter(event_model.Event.id == event.id)\
        .update({event_model.Event.views: event_model.Event.views + 1}, synchronize_session=False)
    db.commit()
    db.refresh(event)
    return event.views


def submit_for_review(db: Session, event_id: int, current_user: user_model.User) -> event_model.Event:
    event = get_organized_event(db, event_id, current_user)
    if event.status != event_model.EventStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is already submitted for review")
    event.submitted_for_review = True
    db.commit()
    db.refresh(event)
    return event


def duplicate_event(db: Session, event_id: int, current_user: user_model.User) -> event_model.Event:
    source = get_organized_event(db, event_id, current_user)
    data = source.published_data()
    data["title"] = f"{source.title} (Copy)"
    copy = event_model.Event(**data, organizer_id=current_user.id, status=event_model.EventStatus.PENDING.value)
    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def _queue_review_email(db: Session, event: event_model.Event, settings: Settings, approved: bool) -> None:
    outbox_service.enqueue_email(
        db,
        event.organizer.email,
        f"Your event \"{event.title}\" was {'approved' if approved else 'rejected'}",
        "event_review.html",
        approved=approved,
        event_title=event.title,
        reason=event.rejection_reason,
        event_url=event_url(settings, event.id),
    )


def approve_event(db: Session, event_id: int, admin: user_model.User, settings: Settings) -> event_model.Event:
    event = get_event(db, event_id)
    if event.status == event_model.EventStatus.APPROVED.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is already approved")
    if event.status == event_model.EventStatus.EDITED_PENDING.value and event.pending_changes:
        proposed = event_schemas.EventData.model_validate(event.pending_changes)
        for field, value in proposed.model_dump().items():
            setattr(event, field, value)
    event.pending_changes = None
    event.status = event_model.EventStatus.APPROVED.value
    event.approved_by_id = admin.id
    event.approved_at = datetime.datetime.utcnow()
    event.rejection_reason = None
    _queue_review_email(db, event, settings, approved=True)
    db.commit()
    db.refresh(event)
    logger.info("Event %s approved by admin %s", event.id, admin.id)
    return event


def reject_event(db: Session, event_id: int, reason: Optional[str], admin: user_model.User, settings: Settings) -> event_model.Event:
    if not reason or not reason.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rejection reason is required")
    event = get_event(db, event_id)
    # A rejected edit drops the shadow copy; the published data is untouched.
    event.pending_changes = None
    event.status = event_model.EventStatus.REJECTED.value
    event.rejection_reason = reason.strip()
    event.approved_by_id = None
    event.approved_at = None
    _queue_review_email(db, event, settings, approved=False)
    db.commit()
    db.refresh(event)
    logger.info("Event %s rejected by admin %s", event.id, admin.id)
    return event


def team_requirements_summary(db: Session, event_id: int) -> event_schemas.TeamRequirementsSummary:
    event = get_event(db, event_id)
    requirements = event_schemas.TeamRequirements.model_validate(event.team_requirements or {})
    team_size = requirements.team_size
    return event_schemas.TeamRequirementsSummary(
        team_requirements=requirements,
        calculated_team_size=team_size,
        girls_required=requirements.girls_required,
        boys_required=requirements.boys_required,
        max_participants=event.max_participants or 0,
        is_valid=team_size > 0 and (not event.max_participants or team_size <= event.max_participants),
    )


def validate_prize_pool(payload: event_schemas.PrizePoolValidationRequest) -> event_schemas.PrizePoolValidation:
    calculated_total = payload.first_place + payload.second_place + payload.third_place + sum(payload.consolation_prizes)
    errors = []
    if payload.first_place < 0 or payload.second_place < 0 or payload.third_place < 0:
        errors.append("Prize amounts cannot be negative")
    if any(prize < 0 for prize in payload.consolation_prizes):
        errors.append("Consolation prize amounts cannot be negative")
    if payload.total_amount and calculated_total > payload.total_amount:
        errors.append(f"Total prize distribution ({calculated_total}) cannot exceed total prize pool ({payload.total_amount})")
    if calculated_total == 0:
        errors.append("At least one prize amount must be greater than 0")
    return event_schemas.PrizePoolValidation(
        **payload.model_dump(),
        calculated_total=calculated_total,
        is_valid=not errors,
        errors=errors,
    )


def validate_team_requirements(payload: event_schemas.TeamRequirementsValidationRequest) -> event_schemas.TeamRequirementsValidation:
    team_size = payload.girls_required + payload.boys_required
    errors = []
    if payload.girls_required < 0 or payload.boys_required < 0:
        errors.append("Girls and boys requirements cannot be negative")
    if team_size == 0:
        errors.append("Team must have at least one member (girls or boys)")
    if payload.max_participants and team_size > payload.max_participants:
        errors.append(f"Team size ({team_size}) cannot exceed maximum participants ({payload.max_participants})")
    return event_schemas.TeamRequirementsValidation(
        **payload.model_dump(),
        calculated_team_size=team_size,
        is_valid=not errors,
        errors=errors,
    )


def user_analytics(db: Session, user_id: int) -> event_schemas.UserAnalytics:
    if not db.query(user_model.User.id).filter(user_model.User.id == user_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    events = list_organized_events(db, user_id)
    joined_ids = select(event_model.event_participants.c.event_id)\
        .where(event_model.event_participants.c.user_id == user_id)
    recent = db.query(event_model.Event)\
        .filter(or_(event_model.Event.organizer_id == user_id, event_model.Event.id.in_(joined_ids)))\
        .order_by(event_model.Event.created_at.desc(), event_model.Event.id.desc())\
        .limit(RECENT_ACTIVITY_LIMIT)\
        .all()
    return event_schemas.UserAnalytics(
        total_events=len(events),
        total_participants=sum(len(event.participants) for event in events),
        total_views=sum(event.views or 0 for event in events),
        total_teams=len(team_service.get_user_teams(db, user_id)),
        recent_activity=recent,
    )


def organizer_analytics(db: Session, organizer: user_model.User) -> event_schemas.OrganizerAnalytics:
    events = list_organized_events(db, organizer.id)
    by_status = {}
    for event in events:
        by_status[event.status] = by_status.get(event.status, 0) + 1
    revenue = db.query(func.coalesce(func.sum(payment_model.Payment.amount), 0))\
        .join(event_model.Event, event_model.Event.id == payment_model.Payment.event_id)\
        .filter(
            event_model.Event.organizer_id == organizer.id,
            payment_model.Payment.status == payment_model.PaymentStatus.COMPLETED.value,
        )\
        .scalar()
    return event_schemas.OrganizerAnalytics(
        total_events=len(events),
        approved_events=by_status.get(event_model.EventStatus.APPROVED.value, 0),
        pending_events=by_status.get(event_model.EventStatus.PENDING.value, 0)
        + by_status.get(event_model.EventStatus.EDITED_PENDING.value, 0),
        rejected_events=by_status.get(event_model.EventStatus.REJECTED.value, 0),
        total_participants=sum(len(event.participants) for event in events),
        total_views=sum(event.views or 0 for event in events),
        total_revenue=float(revenue or 0),
    )
