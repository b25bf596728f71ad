import pytest
from unittest.mock import patch
from fastapi import HTTPException

from huddle.core import security
from huddle.models import user as user_model
from huddle.schemas import auth_schemas
from huddle.services import auth_service


class TestCreateUser:

    def test_emails_and_usernames_are_stored_lowercase(self, db):
        user = auth_service.create_user(db, name=" Ada ", email="Ada@Example.com", username="Ada_L", password="pw123456")
        db.commit()
        assert user.email == "ada@example.com"
        assert user.username == "ada_l"
        assert user.name == "Ada"
        assert security.verify_password("pw123456", user.password_hash)

    def test_duplicate_email_is_rejected(self, db, make_user):
        make_user("first", email="taken@example.com")
        with pytest.raises(HTTPException) as excinfo:
            auth_service.create_user(db, name="Other", email="TAKEN@example.com", username="other", password="x")
        assert excinfo.value.status_code == 400
        assert excinfo.value.detail == "Email already registered"

    def test_duplicate_username_is_rejected_case_insensitively(self, db, make_user):
        make_user("sam")
        with pytest.raises(HTTPException) as excinfo:
            auth_service.create_user(db, name="Sam", email="sam2@example.com", username="SAM", password="x")
        assert excinfo.value.status_code == 400
        assert excinfo.value.detail == "Username already taken"

    @pytest.mark.parametrize("username", ["ab", "has space", "dash-name"])
    def test_invalid_usernames(self, db, username):
        with pytest.raises(HTTPException) as excinfo:
            auth_service.create_user(db, name="X", email="x@example.com", username=username, password="x")
        assert excinfo.value.status_code == 400

    def test_missing_password_leaves_an_unusable_hash(self, db):
        user = auth_service.create_user(db, name="G", email="g@example.com", username="guser", password=None)
        assert user.password_hash
        assert not security.verify_password("", user.password_hash)


class TestUsernames:

    def test_check_username(self, db, make_user):
        make_user("alice")
        assert auth_service.check_username(db, "Alice").available is False
        assert auth_service.check_username(db, "al").available is False
        assert auth_service.check_username(db, "alice_2").available is True

    def test_derive_username_skips_taken_names(self, db, make_user):
        make_user("jo_user")
        assert auth_service.derive_username(db, "jo@example.com") == "jo_user2"
        assert auth_service.derive_username(db, "Mary.Jane@example.com") == "maryjane"


class TestAuthenticateUser:

    def test_login_by_email_or_username(self, db, make_user):
        user = make_user("bob")
        assert auth_service.authenticate_user(db, "bob", "secret123").id == user.id
        assert auth_service.authenticate_user(db, "BOB@example.com", "secret123").id == user.id

    def test_wrong_password_is_401(self, db, make_user):
        make_user("bob")
        with pytest.raises(HTTPException) as excinfo:
            auth_service.authenticate_user(db, "bob", "nope")
        assert excinfo.value.status_code == 401

    def test_deactivated_account_is_403(self, db, make_user):
        user = make_user("bob")
        user.is_active = False
        db.commit()
        with pytest.raises(HTTPException) as excinfo:
            auth_service.authenticate_user(db, "bob", "secret123")
        assert excinfo.value.status_code == 403


class TestGoogleSignIn:

    GOOGLE_PAYLOAD = {
        "sub": "google-123",
        "email": "gina@example.com",
        "name": "Gina",
        "picture": "https://example.com/gina.png",
    }

    @patch("huddle.services.auth_service.id_token.verify_oauth2_token")
    def test_first_sign_in_provisions_a_user(self, mock_verify, db, settings):
        mock_verify.return_value = dict(self.GOOGLE_PAYLOAD)

        user = auth_service.verify_google_id_token("id-token", db, settings)

        assert user.google_id == "google-123"
        assert user.username == "gina"
        assert user.profile_picture == "https://example.com/gina.png"
        assert mock_verify.call_args[0][0] == "id-token"
        assert mock_verify.call_args[0][2] == "test-client-id"

    @patch("huddle.services.auth_service.id_token.verify_oauth2_token")
    def test_existing_email_is_linked(self, mock_verify, db, settings, make_user):
        existing = make_user("gina", email="gina@example.com")
        mock_verify.return_value = dict(self.GOOGLE_PAYLOAD)

        user = auth_service.verify_google_id_token("id-token", db, settings)

        assert user.id == existing.id
        assert user.google_id == "google-123"
        assert db.query(user_model.User).count() == 1

    @patch("huddle.services.auth_service.id_token.verify_oauth2_token")
    def test_invalid_token_is_401(self, mock_verify, db, settings):
        mock_verify.side_effect = ValueError("Token expired")
        with pytest.raises(HTTPException) as excinfo:
            auth_service.verify_google_id_token("bad", db, settings)
        assert excinfo.value.status_code == 401


class TestTokens:

    def test_token_round_trip_carries_user_id_and_role(self, settings, make_user):
        user = make_user("tok", role=user_model.Role.ORGANIZER)
        token = security.issue_token_for(user, settings)
        credentials_exception = HTTPException(status_code=401)
        data = security.verify_token(token, settings, credentials_exception)
        assert data == auth_schemas.TokenData(user_id=user.id, role="organizer")

    def test_token_signed_with_another_secret_is_rejected(self, settings, make_user):
        user = make_user("tok")
        other = settings.model_copy(update={"JWT_SECRET": "other-secret"})
        token = security.issue_token_for(user, other)
        with pytest.raises(HTTPException):
            security.verify_token(token, settings, HTTPException(status_code=401))
