from datetime import datetime, timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient

from huddle.core import security


class TestHealth:

    def test_health(self, client: TestClient):
        for path in ("/health", "/api/health"):
            response = client.get(path)
            assert response.status_code == 200
            assert response.json() == {"status": "ok", "service": "huddle-api"}


class TestRegisterAndLogin:

    def test_register_returns_token_and_user(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={"name": "Nina", "username": "Nina", "email": "Nina@Example.com", "password": "secret123"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["username"] == "nina"
        assert body["user"]["email"] == "nina@example.com"
        assert body["user"]["role"] == "user"
        assert "password_hash" not in body["user"]

    def test_duplicate_email_is_400(self, client: TestClient, register):
        register("nina")
        response = client.post(
            "/api/auth/register",
            json={"name": "Nina 2", "username": "nina2", "email": "nina@example.com", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    def test_invalid_email_is_400(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={"name": "Nina", "username": "nina", "email": "not-an-email", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["detail"][0]["loc"] == ["body", "email"]

    def test_missing_fields_are_400(self, client: TestClient):
        response = client.post("/api/auth/register", json={"username": "nina"})
        assert response.status_code == 400
        missing = {tuple(error["loc"]) for error in response.json()["detail"]}
        assert ("body", "password") in missing

    def test_login_with_username_or_email(self, client: TestClient, register):
        register("nina")
        for identifier in ("nina", "nina@example.com"):
            response = client.post("/api/auth/login", json={"email_or_username": identifier, "password": "secret123"})
            assert response.status_code == 200
            assert response.json()["user"]["username"] == "nina"

    def test_login_with_wrong_password_is_401(self, client: TestClient, register):
        register("nina")
        response = client.post("/api/auth/login", json={"email_or_username": "nina", "password": "nope"})
        assert response.status_code == 401

    def test_check_username(self, client: TestClient, register):
        register("nina")
        assert client.get("/api/auth/check-username/NINA").json()["available"] is False
        assert client.get("/api/auth/check-username/nina_b").json()["available"] is True


class TestCurrentUser:

    def test_me(self, client: TestClient, register):
        headers, user = register("nina")
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == user["id"]

    def test_missing_token_is_401(self, client: TestClient):
        assert client.get("/api/auth/me").status_code == 401

    def test_garbage_token_is_401(self, client: TestClient):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_expired_token_is_401(self, client: TestClient, register, settings):
        _, user = register("nina")
        expired = security.create_access_token(
            {"sub": str(user["id"]), "role": user["role"]}, settings, expires_delta=timedelta(seconds=-10)
        )
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
        assert response.status_code == 401

    def test_deactivated_user_is_401(self, client: TestClient, register, db):
        from huddle.models import user as user_model

        headers, user = register("nina")
        db.query(user_model.User).filter_by(id=user["id"]).update({"is_active": False})
        db.commit()

        assert client.get("/api/auth/me", headers=headers).status_code == 401


class TestGoogleLogin:

    @patch("huddle.services.auth_service.id_token.verify_oauth2_token")
    def test_google_login_provisions_and_signs_in(self, mock_verify, client: TestClient):
        mock_verify.return_value = {"sub": "g-1", "email": "gus@example.com", "name": "Gus"}

        response = client.post("/api/auth/google", json={"token": "google-id-token"})

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == "gus@example.com"
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.json()["username"] == "gus"


class TestStartup:

    def test_importing_the_app_module_builds_nothing(self):
        import huddle.main

        assert not hasattr(huddle.main, "app")

    def test_expired_invites_are_purged_when_the_app_starts(self, app, db, make_user):
        from huddle.models import invite as invite_model
        from huddle.models import team as team_model

        owner = make_user("owner")
        team = team_model.Team(name="Otters", owner_id=owner.id, leader_id=owner.id)
        db.add(team)
        db.flush()
        db.add(invite_model.Invite(
            team_id=team.id,
            email="late@example.com",
            token="stale-token",
            invited_by_id=owner.id,
            expires_at=datetime.utcnow() - timedelta(days=1),
        ))
        db.commit()

        with TestClient(app):
            pass

        db.expire_all()
        assert db.query(invite_model.Invite).count() == 0
