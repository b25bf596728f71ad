from typing import Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from huddle.services import auth_service, event_service
from huddle.core.config import Settings
from huddle.models import user as user_model
from huddle.schemas import event_schemas
from huddle.api.dependencies import get_db, get_outbox_dispatch, get_settings

router = APIRouter()


@router.post("/", response_model=event_schemas.EventRead, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_in: event_schemas.EventCreate,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return event_service.create_event(db=db, event_in=event_in, organizer=current_user)


@router.get("/", response_model=List[event_schemas.EventRead])
async def list_events_endpoint(db: Session = Depends(get_db)):
    return event_service.list_public_events(db=db)


@router.get("/my-events", response_model=List[event_schemas.EventRead])
async def my_events_endpoint(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return event_service.list_organized_events(db=db, user_id=current_user.id)


@router.post("/validate-prize-pool", response_model=event_schemas.PrizePoolValidation)
async def validate_prize_pool_endpoint(payload: event_schemas.PrizePoolValidationRequest):
    return event_service.validate_prize_pool(payload)


@router.post("/validate-team-requirements", response_model=event_schemas.TeamRequirementsValidation)
async def validate_team_requirements_endpoint(payload: event_schemas.TeamRequirementsValidationRequest):
    return event_service.validate_team_requirements(payload)


@router.get("/{event_id}", response_model=event_schemas.EventRead)
async def get_event_endpoint(event_id: int, db: Session = Depends(get_db)):
    return event_service.get_event(db=db, event_id=event_id)


@router.get("/{event_id}/team-requirements", response_model=event_schemas.TeamRequirementsSummary)
async def team_requirements_endpoint(event_id: int, db: Session = Depends(get_db)):
    return event_service.team_requirements_summary(db=db, event_id=event_id)


@router.put("/{event_id}", response_model=event_schemas.EventRead)
async def update_event_endpoint(
    event_id: int,
    event_in: event_schemas.EventUpdate,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return event_service.update_event(db=db, event_id=event_id, event_in=event_in, current_user=current_user)


@router.delete("/{event_id}", response_model=Dict[str, str])
async def delete_event_endpoint(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    event_service.delete_event(db=db, event_id=event_id, current_user=current_user)
    return {"message": "Event deleted successfully"}


@router.post("/{event_id}/join", response_model=event_schemas.JoinEventResult)
async def join_event_endpoint(
    event_id: int,
    join_in: Optional[event_schemas.JoinEventRequest] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    result = event_service.join_event(
        db=db,
        event_id=event_id,
        join_in=join_in or event_schemas.JoinEventRequest(),
        current_user=current_user,
        settings=settings,
    )
    dispatch()
    return result


@router.post("/{event_id}/leave", response_model=event_schemas.EventRead)
async def leave_event_endpoint(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return event_service.leave_event(db=db, event_id=event_id, current_user=current_user)


@router.post("/{event_id}/view", response_model=event_schemas.ViewCount)
async def track_view_endpoint(event_id: int, db: Session = Depends(get_db)):
    return {"views": event_service.track_view(db=db, event_id=event_id)}


@router.post("/{event_id}/submit-for-review", response_model=event_schemas.EventRead)
async def submit_for_review_endpoint(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return event_service.submit_for_review(db=db, event_id=event_id, current_user=current_user)


@router.post("/{event_id}/duplicate", response_model=event_schemas.EventRead, status_code=status.HTTP_201_CREATED)
async def duplicate_event_endpoint(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return event_service.duplicate_event(db=db, event_id=event_id, current_user=current_user)


@router.post("/{event_id}/approve", response_model=event_schemas.EventRead)
async def approve_event_endpoint(
    event_id: int,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    event = event_service.approve_event(db=db, event_id=event_id, admin=admin, settings=settings)
    dispatch()
    return event


@router.post("/{event_id}/reject", response_model=event_schemas.EventRead)
async def reject_event_endpoint(
    event_id: int,
    reject_in: event_schemas.RejectRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    event = event_service.reject_event(db=db, event_id=event_id, reason=reject_in.reason, admin=admin, settings=settings)
    dispatch()
    return event
