import pytest
from fastapi import HTTPException

from huddle.models import invite as invite_model
from huddle.models import team as team_model
from huddle.models import user as user_model
from huddle.schemas import invite_schemas, team_schemas
from huddle.services import invite_service, team_service


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def team(db, owner):
    return team_service.create_team(db, team_schemas.TeamCreate(name="  Otters  ", description="Sunday league"), owner)


class TestCreateTeam:

    def test_owner_is_leader_and_member(self, team, owner):
        assert team.name == "Otters"
        assert team.owner_id == owner.id
        assert team.leader_id == owner.id
        assert [member.id for member in team.members] == [owner.id]

    def test_initial_members_are_added_once(self, db, owner, make_user):
        mate = make_user("mate")
        created = team_service.create_team(
            db, team_schemas.TeamCreate(name="Crew", member_ids=[mate.id, mate.id, owner.id]), owner
        )
        assert [member.id for member in created.members] == [owner.id, mate.id]

    def test_unknown_member_is_404(self, db, owner):
        with pytest.raises(HTTPException) as excinfo:
            team_service.create_team(db, team_schemas.TeamCreate(name="Crew", member_ids=[999]), owner)
        assert excinfo.value.status_code == 404

    def test_blank_name_is_rejected(self, db, owner):
        with pytest.raises(HTTPException) as excinfo:
            team_service.create_team(db, team_schemas.TeamCreate(name="   "), owner)
        assert excinfo.value.status_code == 400


class TestMembership:

    def test_add_member_is_idempotent(self, db, team, owner, make_user):
        mate = make_user("mate")
        team_service.add_member_by_id(db, team.id, mate.id, owner)
        team_service.add_member_by_id(db, team.id, mate.id, owner)

        rows = db.query(team_model.team_members).filter_by(team_id=team.id, user_id=mate.id).count()
        assert rows == 1

    def test_only_the_owner_adds_members(self, db, team, make_user):
        stranger = make_user("stranger")
        with pytest.raises(HTTPException) as excinfo:
            team_service.add_member_by_id(db, team.id, stranger.id, stranger)
        assert excinfo.value.status_code == 403

    def test_manual_add_creates_a_placeholder_account(self, db, team, owner):
        team_service.add_member_manually(
            db, team.id, team_schemas.ManualMemberRequest(name="Walk In", email="walk.in@example.com"), owner
        )
        placeholder = db.query(user_model.User).filter_by(email="walk.in@example.com").one()
        assert placeholder.username == "walkin"
        assert team.has_member(placeholder.id)

    def test_owner_cannot_be_removed(self, db, team, owner):
        with pytest.raises(HTTPException) as excinfo:
            team_service.remove_member(db, team.id, owner.id, owner)
        assert excinfo.value.status_code == 400

    def test_removing_the_leader_hands_leadership_back(self, db, team, owner, make_user):
        mate = make_user("mate")
        team_service.add_member_by_id(db, team.id, mate.id, owner)
        team.leader_id = mate.id
        db.commit()

        updated = team_service.remove_member(db, team.id, mate.id, owner)

        assert updated.leader_id == owner.id
        assert not updated.has_member(mate.id)

    def test_member_teams_and_owned_teams(self, db, team, owner, make_user):
        mate = make_user("mate")
        team_service.add_member_by_id(db, team.id, mate.id, owner)
        assert [t.id for t in team_service.get_user_teams(db, owner.id)] == [team.id]
        assert [t.id for t in team_service.get_member_teams(db, mate.id)] == [team.id]


class TestDeleteTeam:

    def test_delete_removes_invites(self, db, team, owner, settings):
        invite_service.create_invite(db, team.id, invite_schemas.InviteCreate(email="x@example.com"), owner, settings)

        team_service.delete_team(db, team.id, owner)

        assert db.query(team_model.Team).count() == 0
        assert db.query(invite_model.Invite).count() == 0
        assert db.query(team_model.team_members).count() == 0

    def test_admin_may_delete_any_team(self, db, team, make_user):
        admin = make_user("admin", role=user_model.Role.ADMIN)
        team_service.delete_team(db, team.id, admin)
        assert db.query(team_model.Team).count() == 0

    def test_member_cannot_delete(self, db, team, owner, make_user):
        mate = make_user("mate")
        team_service.add_member_by_id(db, team.id, mate.id, owner)
        with pytest.raises(HTTPException) as excinfo:
            team_service.delete_team(db, team.id, mate)
        assert excinfo.value.status_code == 403


class TestSearch:

    def test_search_skips_caller_and_members(self, db, team, owner, make_user):
        mate = make_user("player_one")
        make_user("player_two")
        team_service.add_member_by_id(db, team.id, mate.id, owner)

        found = team_service.search_users(db, "PLAYER", owner, team_id=team.id)

        assert [user.username for user in found] == ["player_two"]

    def test_short_queries_return_nothing(self, db, owner):
        assert team_service.search_users(db, "p", owner) == []
