import datetime

import pytest
from fastapi.testclient import TestClient

from huddle.models import invite as invite_model
from huddle.models import outbox as outbox_model


@pytest.fixture
def admin_headers(register, promote):
    headers, admin = register("boss")
    promote(admin["id"])
    return headers


class TestAccess:

    @pytest.mark.parametrize("path", ["/api/admin/users", "/api/admin/analytics", "/api/admin/outbox"])
    def test_regular_users_are_forbidden(self, client: TestClient, register, path):
        headers, _ = register("pleb")
        assert client.get(path, headers=headers).status_code == 403

    def test_anonymous_is_401(self, client: TestClient):
        assert client.get("/api/admin/users").status_code == 401


class TestUsers:

    def test_analytics(self, client: TestClient, register, admin_headers):
        register("one")
        register("two")
        body = client.get("/api/admin/analytics", headers=admin_headers).json()
        assert body["total_users"] == 3
        assert body["active_users"] == 3
        assert body["recent_registrations"] == 3
        assert body["total_events"] == 0

    def test_deactivate_then_activate(self, client: TestClient, register, admin_headers):
        user_headers, user = register("target")

        response = client.post(f"/api/admin/users/{user['id']}/deactivate", headers=admin_headers)
        assert response.json()["user"]["is_active"] is False
        assert client.get("/api/auth/me", headers=user_headers).status_code == 401

        client.post(f"/api/admin/users/{user['id']}/activate", headers=admin_headers)
        assert client.get("/api/auth/me", headers=user_headers).status_code == 200

    def test_unknown_action_is_400(self, client: TestClient, register, admin_headers):
        _, user = register("target")
        assert client.post(f"/api/admin/users/{user['id']}/ban", headers=admin_headers).status_code == 400

    def test_admin_cannot_demote_themselves(self, client: TestClient, admin_headers):
        me = client.get("/api/auth/me", headers=admin_headers).json()
        response = client.put(f"/api/admin/users/{me['id']}/role", json={"role": "user"}, headers=admin_headers)
        assert response.status_code == 400

    def test_organizer_request_approval(self, client: TestClient, register, admin_headers):
        user_headers, user = register("hopeful")
        response = client.post(
            "/api/users/request-organizer", json={"reason": "I run a league", "organization": "City League"},
            headers=user_headers,
        )
        assert response.status_code == 200

        pending = client.get("/api/admin/organizer-requests", headers=admin_headers).json()
        assert [u["id"] for u in pending] == [user["id"]]

        approved = client.post(f"/api/admin/organizer-requests/{user['id']}/approve", headers=admin_headers)
        assert approved.json()["user"]["role"] == "organizer"
        assert approved.json()["user"]["organizer_verified"] is True


class TestMaintenance:

    def test_outbox_listing_and_retry(self, client: TestClient, register, admin_headers, db):
        headers, _ = register("owner")
        team = client.post("/api/teams/", json={"name": "Otters"}, headers=headers).json()
        client.post(f"/api/invites/teams/{team['id']}/invite", json={"email": "x@example.com"}, headers=headers)

        db.expire_all()
        message = db.query(outbox_model.OutboxMessage).one()
        message.status = outbox_model.DeliveryStatus.FAILED.value
        message.last_error = "SMTP delivery to x@example.com failed"
        db.commit()

        failed = client.get("/api/admin/outbox", params={"status_filter": "failed"}, headers=admin_headers).json()
        assert [m["id"] for m in failed] == [message.id]

        retried = client.post(f"/api/admin/outbox/{message.id}/retry", headers=admin_headers)
        assert retried.json()["status"] == "sent"
        assert retried.json()["last_error"] is None

    def test_purge_expired(self, client: TestClient, register, admin_headers, db):
        headers, _ = register("owner")
        team = client.post("/api/teams/", json={"name": "Otters"}, headers=headers).json()
        client.post(f"/api/invites/teams/{team['id']}/invite", json={"email": "x@example.com"}, headers=headers)

        db.expire_all()
        db.query(invite_model.Invite).update(
            {"expires_at": datetime.datetime.utcnow() - datetime.timedelta(days=1)}
        )
        db.commit()

        response = client.post("/api/admin/purge-expired", headers=admin_headers)
        assert response.json() == {"invites_removed": 1, "otps_removed": 0}
