from fastapi.testclient import TestClient


class TestProfile:

    def test_update_profile(self, client: TestClient, register):
        headers, _ = register("rosa")
        response = client.put("/api/users/profile", json={"bio": "Libero", "gender": "female"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["bio"] == "Libero"
        assert client.get("/api/users/profile", headers=headers).json()["gender"] == "female"

    def test_change_password_then_login(self, client: TestClient, register):
        headers, _ = register("rosa")
        response = client.put(
            "/api/users/change-password",
            json={"current_password": "secret123", "new_password": "another-one"},
            headers=headers,
        )
        assert response.json() == {"message": "Password changed successfully"}
        login = client.post("/api/auth/login", json={"email_or_username": "rosa", "password": "another-one"})
        assert login.status_code == 200

    def test_delete_account_requires_password(self, client: TestClient, register):
        headers, _ = register("rosa")
        assert client.request("DELETE", "/api/users/account", json={}, headers=headers).status_code == 400
        response = client.request("DELETE", "/api/users/account", json={"password": "secret123"}, headers=headers)
        assert response.json() == {"message": "Account deleted successfully"}
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_invites_are_private(self, client: TestClient, register):
        headers, rosa = register("rosa")
        other_headers, _ = register("other")
        assert client.get(f"/api/users/{rosa['id']}/invites", headers=headers).json() == []
        assert client.get(f"/api/users/{rosa['id']}/invites", headers=other_headers).status_code == 403

    def test_analytics(self, client: TestClient, register):
        headers, rosa = register("rosa")
        client.post("/api/teams/", json={"name": "Roses"}, headers=headers)
        client.post(
            "/api/events/", json={"title": "Cup", "date": "2030-01-01T10:00:00", "location": "Park"}, headers=headers
        )
        body = client.get(f"/api/users/{rosa['id']}/analytics").json()
        assert body["total_events"] == 1
        assert body["total_teams"] == 1
        assert [e["title"] for e in body["recent_activity"]] == ["Cup"]

    def test_organizer_analytics_requires_organizer(self, client: TestClient, register, promote):
        from huddle.models.user import Role

        headers, rosa = register("rosa")
        assert client.get("/api/users/organizer-analytics", headers=headers).status_code == 403
        promote(rosa["id"], Role.ORGANIZER)
        assert client.get("/api/users/organizer-analytics", headers=headers).json()["total_revenue"] == 0


class TestOTP:

    def test_send_and_verify(self, client: TestClient, register):
        headers, _ = register("rosa")
        sent = client.post(
            "/api/otp/send", json={"mobile_number": "9876543210", "purpose": "registration"}, headers=headers
        ).json()
        assert sent["message"] == "OTP sent successfully"

        verified = client.post(
            "/api/otp/verify",
            json={"mobile_number": "9876543210", "purpose": "registration", "otp": sent["otp"]},
            headers=headers,
        )
        assert verified.json() == {"message": "OTP verified successfully", "verified": True}

    def test_requires_authentication(self, client: TestClient):
        response = client.post("/api/otp/send", json={"mobile_number": "9876543210", "purpose": "registration"})
        assert response.status_code == 401


class TestPayments:

    def test_pay_and_list(self, client: TestClient, register):
        org_headers, _ = register("org")
        player_headers, _ = register("player")
        event = client.post(
            "/api/events/",
            json={"title": "Cup", "date": "2030-01-01T10:00:00", "location": "Park", "price": 12.5},
            headers=org_headers,
        ).json()

        created = client.post("/api/payments/create-payment", json={"event_id": event["id"]}, headers=player_headers)
        assert created.status_code == 200
        assert created.json()["amount"] == 12.5
        assert created.json()["status"] == "completed"

        mine = client.get("/api/payments/user/payments", headers=player_headers).json()
        assert [p["id"] for p in mine] == [created.json()["payment_id"]]
        assert client.get(f"/api/payments/event/{event['id']}", headers=player_headers).status_code == 403
        assert len(client.get(f"/api/payments/event/{event['id']}", headers=org_headers).json()) == 1
