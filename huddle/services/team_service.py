import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from huddle.core.database import add_to_set
from huddle.models import team as team_model
from huddle.models import user as user_model
from huddle.schemas import team_schemas
from huddle.services import auth_service

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
AUTO_MATCH_LIMIT = 20


def get_team(db: Session, team_id: int) -> team_model.Team:
    team = db.query(team_model.Team).filter(team_model.Team.id == team_id).first()
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return team


def get_owned_team(db: Session, team_id: int, current_user: user_model.User, action: str = "manage this team") -> team_model.Team:
    team = get_team(db, team_id)
    if team.owner_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Only the team owner can {action}")
    return team


def add_member(db: Session, team_id: int, user_id: int) -> bool:
    """Adds a user to a team; returns False when they were already a member."""
    return add_to_set(db, team_model.team_members, team_id=team_id, user_id=user_id)


def create_team(db: Session, team_in: team_schemas.TeamCreate, owner: user_model.User) -> team_model.Team:
    if not team_in.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Team name is required")
    db_team = team_model.Team(
        name=team_in.name.strip(),
        description=team_in.description,
        owner_id=owner.id,
        leader_id=owner.id,
        max_members=team_in.max_members,
    )
    db.add(db_team)
    db.flush()

    add_member(db, db_team.id, owner.id)
    for member_id in team_in.member_ids:
        if not db.query(user_model.User.id).filter(user_model.User.id == member_id).first():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {member_id} not found")
        add_member(db, db_team.id, member_id)

    db.commit()
    db.refresh(db_team)
    return db_team


def get_user_teams(db: Session, user_id: int) -> List[team_model.Team]:
    # Teams owned by the user OR teams the user is a member of
    return db.query(team_model.Team)\
        .outerjoin(team_model.team_members, team_model.team_members.c.team_id == team_model.Team.id)\
        .filter(or_(team_model.Team.owner_id == user_id, team_model.team_members.c.user_id == user_id))\
        .distinct()\
        .order_by(team_model.Team.created_at.desc(), team_model.Team.id.desc())\
        .all()


def get_member_teams(db: Session, user_id: int) -> List[team_model.Team]:
    return db.query(team_model.Team)\
        .join(team_model.team_members, team_model.team_members.c.team_id == team_model.Team.id)\
        .filter(team_model.team_members.c.user_id == user_id)\
        .order_by(team_model.Team.id)\
        .all()


def add_member_by_id(db: Session, team_id: int, user_id: int, current_user: user_model.User) -> team_model.Team:
    team = get_owned_team(db, team_id, current_user, "add members")
    if not db.query(user_model.User.id).filter(user_model.User.id == user_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    add_member(db, team.id, user_id)
    db.commit()
    db.refresh(team)
    return team


def add_member_manually(db: Session, team_id: int, member_in: team_schemas.ManualMemberRequest, current_user: user_model.User) -> team_model.Team:
    """Adds a member by contact details, creating a placeholder account if needed.

    The placeholder has an unusable password; the person claims it through
    Google sign-in or a team invitation sent to the same address.
    """
    team = get_owned_team(db, team_id, current_user, "add members")
    user = auth_service.get_user_by_email(db, member_in.email)
    if user is None:
        user = auth_service.create_user(
            db,
            name=member_in.name,
            email=member_in.email,
            username=auth_service.derive_username(db, member_in.email),
            password=None,
            bio=member_in.bio,
            social_links=member_in.social_links,
        )
        logger.info("Created placeholder user %s for team %s", user.username, team.id)
    add_member(db, team.id, user.id)
    db.commit()
    db.refresh(team)
    return team


def remove_member(db: Session, team_id: int, user_id: int, current_user: user_model.User) -> team_model.Team:
    team = get_owned_team(db, team_id, current_user, "remove members")
    if user_id == team.owner_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The team owner cannot be removed")
    db.execute(
        team_model.team_members.delete().where(
            team_model.team_members.c.team_id == team.id,
            team_model.team_members.c.user_id == user_id,
        )
    )
    if team.leader_id == user_id:
        team.leader_id = team.owner_id
    db.commit()
    db.refresh(team)
    return team


def delete_team(db: Session, team_id: int, current_user: user_model.User) -> None:
    team = get_team(db, team_id)
    if team.owner_id != current_user.id and current_user.role != user_model.Role.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only team owner can delete the team")
    # Invites go with the team through the relationship cascade.
    db.delete(team)
    db.commit()
    logger.info("Team %s deleted by user %s", team_id, current_user.id)


def search_users(db: Session, query: str, current_user: user_model.User, team_id: Optional[int] = None) -> List[user_model.User]:
    """Username search for invitations, leaving out the caller and current members."""
    if not query or len(query) < 2:
        return []
    excluded = {current_user.id}
    if team_id is not None:
        team = db.query(team_model.Team).filter(team_model.Team.id == team_id).first()
        if team:
            excluded.update(member.id for member in team.members)
    pattern = f"%{query.lower()}%"
    return db.query(user_model.User)\
        .filter(func.lower(user_model.User.username).like(pattern), user_model.User.id.notin_(excluded))\
        .order_by(user_model.User.username)\
        .limit(SEARCH_LIMIT)\
        .all()


def auto_match_candidates(db: Session, team_id: int, current_user: user_model.User) -> List[user_model.User]:
    team = get_team(db, team_id)
    excluded = {current_user.id} | {member.id for member in team.members}
    return db.query(user_model.User)\
        .filter(user_model.User.id.notin_(excluded), user_model.User.is_active.is_(True))\
        .order_by(user_model.User.id)\
        .limit(AUTO_MATCH_LIMIT)\
        .all()
