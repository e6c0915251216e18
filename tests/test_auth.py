from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from app import main as app_main
from app.domain.models import Account, AccountRole
from app.infra import audit, db, events
from app.infra.auth import decode_access_token, hash_password, verify_password
from app.services.account_service import AccountService


@pytest.fixture()
def auth_client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[TestClient, None, None]:
    db_path = tmp_path / "auth_test.db"
    test_engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(test_engine)
    monkeypatch.setattr(db, "engine", test_engine)
    monkeypatch.setattr(audit, "engine", test_engine)
    monkeypatch.setattr(events, "engine", test_engine)

    client = TestClient(app_main.app)
    yield client
    client.close()
    app_main.app.dependency_overrides.clear()


def _register(client: TestClient, username: str = "ada", email: str = "Ada@Example.com") -> dict:
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": "correct-horse"},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_register_returns_account_without_secret(auth_client: TestClient) -> None:
    body = _register(auth_client)

    assert body["username"] == "ada"
    assert body["email"] == "ada@example.com"
    assert body["role"] == "USER"
    assert body["isActive"] is True
    assert "createdAt" in body
    assert "passwordHash" not in body and "password_hash" not in body


def test_duplicate_registration_conflicts(auth_client: TestClient) -> None:
    _register(auth_client)

    same_email = auth_client.post(
        "/api/auth/register",
        json={"username": "ada2", "email": "ada@example.com", "password": "correct-horse"},
    )
    assert same_email.status_code == 409
    assert same_email.json() == {"message": "Username or email already exists", "code": "ACCOUNT_EXISTS"}

    same_username = auth_client.post(
        "/api/auth/register",
        json={"username": "ada", "email": "other@example.com", "password": "correct-horse"},
    )
    assert same_username.status_code == 409


def test_register_rejects_short_password(auth_client: TestClient) -> None:
    response = auth_client.post(
        "/api/auth/register",
        json={"username": "bob", "email": "bob@example.com", "password": "short"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_FAILED"


def test_login_by_username_or_email(auth_client: TestClient) -> None:
    account = _register(auth_client)

    for identifier in ("ada", "ADA@example.com"):
        response = auth_client.post(
            "/api/auth/login",
            json={"identifier": identifier, "password": "correct-horse"},
        )
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["tokenType"] == "bearer"
        assert body["userId"] == account["id"]
        claims = decode_access_token(body["accessToken"])
        assert claims["sub"] == account["id"]
        assert claims["role"] == "USER"


def test_login_rejects_bad_credentials(auth_client: TestClient) -> None:
    _register(auth_client)

    wrong_password = auth_client.post("/api/auth/login", json={"identifier": "ada", "password": "nope-nope"})
    assert wrong_password.status_code == 401
    assert wrong_password.json()["code"] == "UNAUTHENTICATED"
    assert wrong_password.headers["www-authenticate"] == "Bearer"

    unknown = auth_client.post("/api/auth/login", json={"identifier": "ghost", "password": "correct-horse"})
    assert unknown.status_code == 401


def test_me_requires_valid_token(auth_client: TestClient) -> None:
    account = _register(auth_client)
    token = auth_client.post(
        "/api/auth/login",
        json={"identifier": "ada", "password": "correct-horse"},
    ).json()["accessToken"]

    me = auth_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == account["id"]

    assert auth_client.get("/api/auth/me").status_code == 401
    garbage = auth_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401
    assert garbage.json() == {"message": "Invalid token", "code": "UNAUTHENTICATED"}


def test_upsert_admin_creates_then_promotes(auth_client: TestClient) -> None:
    service = AccountService()

    admin, created = service.upsert_admin("root@example.com", "admin-pass-1")
    assert created is True
    assert admin.role == AccountRole.ADMIN
    assert admin.username == "root"

    user = _register(auth_client, username="carol", email="carol@example.com")
    promoted, created = service.upsert_admin("carol@example.com", "new-pass-123")
    assert created is False
    assert promoted.id == user["id"]

    login = auth_client.post("/api/auth/login", json={"identifier": "carol", "password": "new-pass-123"})
    assert login.status_code == 200
    assert login.json()["role"] == "ADMIN"
    assert decode_access_token(login.json()["accessToken"])["role"] == "ADMIN"


def test_passwords_are_stored_as_bcrypt_hashes(auth_client: TestClient) -> None:
    account = _register(auth_client)

    with Session(db.engine) as session:
        stored = session.get(Account, account["id"])
    assert stored is not None
    assert stored.password_hash.startswith("$2b$")
    assert "correct-horse" not in stored.password_hash
    assert verify_password("correct-horse", stored.password_hash)
    assert not verify_password("correct-horsE", stored.password_hash)
    assert hash_password("correct-horse") != stored.password_hash
