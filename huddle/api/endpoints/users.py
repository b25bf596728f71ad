from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from huddle.services import auth_service, event_service, invite_service, team_service, user_service
from huddle.models import user as user_model
from huddle.schemas import event_schemas, invite_schemas, team_schemas, user_schemas
from huddle.api.dependencies import get_db

router = APIRouter()


@router.get("/profile", response_model=user_schemas.UserRead)
async def read_profile(current_user: user_model.User = Depends(auth_service.get_current_user)):
    return current_user


@router.put("/profile", response_model=user_schemas.UserRead)
async def update_profile_endpoint(
    profile_in: user_schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return user_service.update_profile(db=db, user=current_user, profile_in=profile_in)


@router.put("/change-password", response_model=Dict[str, str])
async def change_password_endpoint(
    password_in: user_schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    user_service.change_password(db=db, user=current_user, password_in=password_in)
    return {"message": "Password changed successfully"}


@router.delete("/account", response_model=Dict[str, str])
async def delete_account_endpoint(
    delete_in: user_schemas.AccountDelete,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    user_service.delete_account(db=db, user=current_user, password=delete_in.password)
    return {"message": "Account deleted successfully"}


@router.post("/profile-picture", response_model=user_schemas.UserRead)
async def update_profile_picture_endpoint(
    picture_in: user_schemas.ProfilePictureUpdate,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return user_service.update_profile_picture(db=db, user=current_user, picture_in=picture_in)


@router.get("/search/username/{username}", response_model=List[user_schemas.UserPublic])
async def search_users_endpoint(
    username: str,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return user_service.search_by_username(db=db, query=username, current_user=current_user)


@router.get("/auto-match/{team_id}", response_model=List[user_schemas.UserPublic])
async def auto_match_endpoint(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.auto_match_candidates(db=db, team_id=team_id, current_user=current_user)


@router.post("/request-organizer", response_model=user_schemas.OrganizerRequestStatusRead)
async def request_organizer_endpoint(
    request_in: user_schemas.OrganizerRequestCreate,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    user = user_service.request_organizer(db=db, user=current_user, request_in=request_in)
    return user_service.organizer_request_status(user)


@router.get("/organizer-request-status", response_model=user_schemas.OrganizerRequestStatusRead)
async def organizer_request_status_endpoint(current_user: user_model.User = Depends(auth_service.get_current_user)):
    return user_service.organizer_request_status(current_user)


@router.get("/organizer-analytics", response_model=event_schemas.OrganizerAnalytics)
async def organizer_analytics_endpoint(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.require_organizer),
):
    return event_service.organizer_analytics(db=db, organizer=current_user)


@router.get("/{user_id}/events", response_model=List[event_schemas.EventRead])
async def get_user_events(user_id: int, db: Session = Depends(get_db)):
    return event_service.list_organized_events(db=db, user_id=user_id)


@router.get("/{user_id}/joined", response_model=List[event_schemas.EventRead])
async def get_user_joined_events(user_id: int, db: Session = Depends(get_db)):
    return event_service.list_joined_events(db=db, user_id=user_id)


@router.get("/{user_id}/teams", response_model=List[team_schemas.TeamRead])
async def get_user_teams(user_id: int, db: Session = Depends(get_db)):
    return team_service.get_user_teams(db=db, user_id=user_id)


@router.get("/{user_id}/invites", response_model=List[invite_schemas.InviteRead])
async def get_user_invites(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    # Invitee or admin only.
    if current_user.id != user_id and current_user.role != user_model.Role.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view these invitations")
    user = user_service.get_user(db=db, user_id=user_id)
    return invite_service.list_invites_for_email(db=db, email=user.email)


@router.get("/{user_id}/analytics", response_model=event_schemas.UserAnalytics)
async def get_user_analytics(user_id: int, db: Session = Depends(get_db)):
    return event_service.user_analytics(db=db, user_id=user_id)
