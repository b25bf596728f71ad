from typing import Dict, List, Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from huddle.services import notification_service, auth_service
from huddle.models import user as user_model
from huddle.schemas import notification_schemas
from huddle.api.dependencies import get_db

router = APIRouter()


@router.get("/", response_model=List[notification_schemas.NotificationRead])
async def get_user_notifications_endpoint(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return notification_service.get_user_notifications(db=db, user_id=current_user.id)


@router.get("/unread-count", response_model=notification_schemas.UnreadCount)
async def unread_count_endpoint(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return {"count": notification_service.count_unread(db=db, user_id=current_user.id)}


@router.patch("/read-all", response_model=Dict[str, Union[str, int]])
async def mark_all_user_notifications_as_read_endpoint(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    updated = notification_service.mark_all_user_notifications_as_read(db=db, current_user_id=current_user.id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.patch("/{notification_id}/read", response_model=notification_schemas.NotificationRead)
async def mark_notification_as_read_endpoint(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return notification_service.mark_notification_as_read(
        db=db, notification_id=notification_id, current_user_id=current_user.id
    )


@router.post("/{notification_id}/accept", response_model=notification_schemas.InvitationResponse)
async def accept_invitation_endpoint(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    notification, team = notification_service.respond_to_invitation(
        db=db, notification_id=notification_id, current_user=current_user, accept=True
    )
    return {"message": "Team invitation accepted successfully", "notification": notification, "team": team}


@router.post("/{notification_id}/decline", response_model=notification_schemas.InvitationResponse)
async def decline_invitation_endpoint(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    notification, _ = notification_service.respond_to_invitation(
        db=db, notification_id=notification_id, current_user=current_user, accept=False
    )
    return {"message": "Team invitation declined", "notification": notification}
