from typing import Callable, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from huddle.services import auth_service, invite_service
from huddle.core import security
from huddle.core.config import Settings
from huddle.models import user as user_model
from huddle.schemas import invite_schemas
from huddle.api.dependencies import get_db, get_outbox_dispatch, get_settings

router = APIRouter()


@router.post("/teams/{team_id}/invite", response_model=invite_schemas.InviteWithToken, status_code=status.HTTP_201_CREATED)
async def create_invite_endpoint(
    team_id: int,
    invite_in: invite_schemas.InviteCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    invite = invite_service.create_invite(
        db=db, team_id=team_id, invite_in=invite_in, current_user=current_user, settings=settings
    )
    dispatch()
    return invite


@router.get("/teams/{team_id}/invites", response_model=List[invite_schemas.InviteRead])
async def list_team_invites_endpoint(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return invite_service.list_team_invites(db=db, team_id=team_id, current_user=current_user)


@router.get("/{token}", response_model=invite_schemas.InvitePublic)
async def get_invite_endpoint(token: str, db: Session = Depends(get_db)):
    return invite_service.get_active_invite(db=db, token=token)


@router.post("/{token}/accept", response_model=invite_schemas.InviteRedeemed)
async def accept_invite_endpoint(
    token: str,
    payload: invite_schemas.InviteAcceptRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user, team = invite_service.accept_invite(db=db, token=token, payload=payload)
    return {
        "message": f"Welcome to {team.name}!",
        "token": security.issue_token_for(user, settings),
        "user": user,
        "team": team,
    }


@router.post("/{token}/join", response_model=invite_schemas.InviteRedeemed)
async def join_with_invite_endpoint(
    token: str,
    payload: invite_schemas.InviteJoinRequest,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    team = invite_service.join_with_invite(db=db, token=token, payload=payload, current_user=current_user)
    return {"message": f"You have joined {team.name}", "user": current_user, "team": team}


@router.post("/{invite_id}/resend", response_model=invite_schemas.InviteRead)
async def resend_invite_endpoint(
    invite_id: int,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatch: Callable[[], None] = Depends(get_outbox_dispatch),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    invite = invite_service.resend_invite(db=db, invite_id=invite_id, current_user=current_user, settings=settings)
    dispatch()
    return invite


@router.delete("/{invite_id}", response_model=invite_schemas.InviteRead)
async def withdraw_invite_endpoint(
    invite_id: int,
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(auth_service.get_current_user),
):
    return invite_service.withdraw_invite(db=db, invite_id=invite_id, current_user=current_user)
