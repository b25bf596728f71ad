from typing import Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from huddle.services import auth_service, invite_service, team_service
from huddle.core.config import Settings
from huddle.models import user as user_model
from huddle.schemas import invite_schemas, team_schemas, user_schemas
from huddle.api.dependencies import get_db, get_outbox_dispatch, get_settings

router = APIRouter()


@router.post("/", response_model=team_schemas.TeamRead, status_code=status.HTTP_201_CREATED)
async def create_team_endpoint(
    team_in: team_schemas.TeamCreate,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.create_team(db=db, team_in=team_in, owner=current_user)


@router.get("/mine", response_model=List[team_schemas.TeamRead])
async def get_my_teams_endpoint(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.get_user_teams(db=db, user_id=current_user.id)


@router.get("/search/users", response_model=List[user_schemas.UserPublic])
async def search_users_endpoint(
    q: str = "",
    team_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.search_users(db=db, query=q, current_user=current_user, team_id=team_id)


@router.get("/{team_id}", response_model=team_schemas.TeamRead)
async def get_team_endpoint(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.get_team(db=db, team_id=team_id)


@router.post("/{team_id}/members", response_model=team_schemas.TeamRead)
async def add_member_endpoint(
    team_id: int,
    member_in: team_schemas.AddMemberRequest,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.add_member_by_id(db=db, team_id=team_id, user_id=member_in.user_id, current_user=current_user)


@router.post("/{team_id}/members/manual", response_model=team_schemas.TeamRead)
async def add_member_manually_endpoint(
    team_id: int,
    member_in: team_schemas.ManualMemberRequest,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.add_member_manually(db=db, team_id=team_id, member_in=member_in, current_user=current_user)


@router.delete("/{team_id}/members/{user_id}", response_model=team_schemas.TeamRead)
async def remove_member_endpoint(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return team_service.remove_member(db=db, team_id=team_id, user_id=user_id, current_user=current_user)


@router.delete("/{team_id}", response_model=Dict[str, str])
async def delete_team_endpoint(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    team_service.delete_team(db=db, team_id=team_id, current_user=current_user)
    return {"message": "Team deleted successfully"}


@router.post("/{team_id}/invite-by-username", response_model=invite_schemas.InviteWithToken, status_code=status.HTTP_201_CREATED)
async def invite_by_username_endpoint(
    team_id: int,
    payload: team_schemas.InviteByUsernameRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    invite = invite_service.invite_by_username(
        db=db, team_id=team_id, payload=payload, current_user=current_user, settings=settings
    )
    dispatch()
    return invite
