"""Unit tests for account routes."""

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from todoboard.api.app import create_app
from todoboard.api.dependencies import get_persistence_store
from todoboard.persistence import PersistenceStore


@pytest.fixture
def store():
    """Create an in-memory PersistenceStore."""
    s = PersistenceStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def app(store: PersistenceStore):
    """Create the app with the store overridden."""
    app = create_app(":memory:")

    def override_get_persistence_store():
        yield store

    app.dependency_overrides[get_persistence_store] = override_get_persistence_store
    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


def _register(client: TestClient, email: str = "alice@example.com", password: str = "secret1"):
    return client.post("/api/v1/auth/register", json={"email": email, "password": password})


@pytest.mark.unit
class TestRegister:
    """Tests for POST /api/v1/auth/register."""

    def test_register(self, client: TestClient) -> None:
        response = _register(client, email="Alice@Example.com")

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["email"] == "alice@example.com"
        assert "password" not in data
        assert "password_hash" not in data

    def test_duplicate(self, client: TestClient) -> None:
        _register(client)

        response = _register(client, email="ALICE@example.com")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "An account with this email already exists"

    @pytest.mark.parametrize(
        ("email", "password"),
        [("not-an-email", "secret1"), ("alice@example.com", "short")],
    )
    def test_invalid_input(self, client: TestClient, email: str, password: str) -> None:
        response = _register(client, email=email, password=password)

        assert response.status_code == 422


@pytest.mark.unit
class TestLogin:
    """Tests for POST /api/v1/auth/login."""

    def test_login(self, client: TestClient, store: PersistenceStore) -> None:
        _register(client)

        response = client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": "secret1"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["user"]["email"] == "alice@example.com"
        assert store.get_user_by_token(data["token"]).email == "alice@example.com"

    @pytest.mark.parametrize(
        ("email", "password"),
        [("alice@example.com", "wrong-password"), ("bob@example.com", "secret1")],
    )
    def test_bad_credentials(self, client: TestClient, email: str, password: str) -> None:
        _register(client)

        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"data": None, "error": "Invalid email or password"}


@pytest.mark.unit
class TestSession:
    """Tests for /me and /logout."""

    @pytest.fixture
    def token(self, client: TestClient) -> str:
        _register(client)
        response = client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": "secret1"}
        )
        return response.json()["data"]["token"]

    def test_me(self, client: TestClient, token: str) -> None:
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["email"] == "alice@example.com"

    def test_me_requires_token(self, client: TestClient) -> None:
        response = client.get("/api/v1/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout_invalidates_token(self, client: TestClient, token: str) -> None:
        headers = {"Authorization": f"Bearer {token}"}

        response = client.post("/api/v1/auth/logout", headers=headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401
        assert client.get("/api/v1/board", headers=headers).status_code == 401
