import pytest
from fastapi.testclient import TestClient

from huddle.core.config import Settings
from huddle.main import create_app
from huddle.models import user as user_model
from huddle.services import auth_service

PASSWORD = "secret123"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        ENVIRONMENT="development",
        JWT_SECRET="test-secret",
        CLIENT_ORIGIN="http://localhost:5175",
        GOOGLE_CLIENT_ID="test-client-id",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Creates a committed user directly through the service layer."""
    def _make_user(username, email=None, name=None, password=PASSWORD, role=user_model.Role.USER):
        user = auth_service.create_user(
            db,
            name=name or username.title(),
            email=email or f"{username}@example.com",
            username=username,
            password=password,
        )
        user.role = role.value
        return auth_service.commit_new_user(db, user)
    return _make_user


@pytest.fixture
def register(client):
    """Registers through the API and returns (auth headers, user json)."""
    def _register(username, email=None, name=None, password=PASSWORD, **extra):
        response = client.post(
            "/api/auth/register",
            json={
                "name": name or username.title(),
                "username": username,
                "email": email or f"{username}@example.com",
                "password": password,
                **extra,
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]
    return _register


@pytest.fixture
def promote(app):
    def _promote(user_id, role=user_model.Role.ADMIN):
        session = app.state.session_factory()
        try:
            user = session.query(user_model.User).filter(user_model.User.id == user_id).one()
            user.role = role.value
            session.commit()
        finally:
            session.close()
    return _promote
