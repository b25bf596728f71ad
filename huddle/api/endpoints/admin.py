from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from huddle.services import admin_service, auth_service, event_service, outbox_service
from huddle.core.config import Settings
from huddle.models import user as user_model
from huddle.schemas import admin_schemas, event_schemas, invite_schemas, team_schemas, user_schemas
from huddle.api.dependencies import get_db, get_settings

router = APIRouter()


@router.get("/users", response_model=List[user_schemas.UserRead])
async def list_users_endpoint(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return admin_service.list_users(db=db, skip=skip, limit=limit)


@router.get("/events", response_model=List[event_schemas.EventRead])
async def list_events_endpoint(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return event_service.list_all_events(db=db, skip=skip, limit=limit)


@router.get("/events/pending", response_model=List[event_schemas.EventRead])
async def list_pending_events_endpoint(
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return event_service.list_pending_events(db=db)


@router.get("/teams", response_model=List[team_schemas.TeamRead])
async def list_teams_endpoint(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return admin_service.list_teams(db=db, skip=skip, limit=limit)


@router.get("/invites", response_model=List[invite_schemas.InviteRead])
async def list_invites_endpoint(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return admin_service.list_invites(db=db, skip=skip, limit=limit)


@router.get("/analytics", response_model=admin_schemas.AdminAnalytics)
async def analytics_endpoint(
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return admin_service.analytics(db=db)


@router.post("/users/{user_id}/{action}", response_model=admin_schemas.UserActionResult)
async def user_action_endpoint(
    user_id: int,
    action: str,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    if action not in ("activate", "deactivate"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")
    user = admin_service.set_user_active(db=db, user_id=user_id, active=action == "activate", admin=admin)
    return {"message": f"User {action}d successfully", "user": user}


@router.put("/users/{user_id}/role", response_model=admin_schemas.UserActionResult)
async def change_role_endpoint(
    user_id: int,
    role_in: admin_schemas.RoleUpdate,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    user = admin_service.change_role(db=db, user_id=user_id, role=role_in.role, admin=admin)
    return {"message": f"User role updated to {user.role}", "user": user}


@router.delete("/users/{user_id}", response_model=Dict[str, str])
async def delete_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    admin_service.delete_user(db=db, user_id=user_id, admin=admin)
    return {"message": "User deleted successfully"}


@router.get("/users/{user_id}/details", response_model=admin_schemas.UserDetails)
async def user_details_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return admin_service.user_details(db=db, user_id=user_id)


@router.get("/organizer-requests", response_model=List[user_schemas.UserRead])
async def list_organizer_requests_endpoint(
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return admin_service.list_organizer_requests(db=db)


@router.post("/organizer-requests/{user_id}/approve", response_model=admin_schemas.UserActionResult)
async def approve_organizer_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    user = admin_service.approve_organizer(db=db, user_id=user_id, admin=admin)
    return {"message": "Organizer request approved", "user": user}


@router.post("/organizer-requests/{user_id}/reject", response_model=admin_schemas.UserActionResult)
async def reject_organizer_endpoint(
    user_id: int,
    reject_in: event_schemas.RejectRequest,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    user = admin_service.reject_organizer(db=db, user_id=user_id, reason=reject_in.reason, admin=admin)
    return {"message": "Organizer request rejected", "user": user}


@router.get("/outbox", response_model=List[admin_schemas.OutboxMessageRead])
async def list_outbox_endpoint(
    status_filter: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return outbox_service.list_messages(db=db, status_filter=status_filter, skip=skip, limit=limit)


@router.post("/outbox/{message_id}/retry", response_model=admin_schemas.OutboxMessageRead)
async def retry_outbox_endpoint(
    message_id: int,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return outbox_service.retry(db=db, message_id=message_id, settings=settings)


@router.post("/purge-expired", response_model=admin_schemas.PurgeResult)
async def purge_expired_endpoint(
    db: Session = Depends(get_db),
    admin: user_model.User = Depends(auth_service.require_admin),
):
    return admin_service.purge_expired(db=db)
