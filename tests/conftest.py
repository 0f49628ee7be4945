from __future__ import annotations

from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from blog_api.auth import CredentialService
from blog_api.main import create_app
from blog_api.models import Role, User
from blog_api.settings import Settings

TEST_SECRET_KEY = "test-secret-key-with-at-least-32-characters"
DEFAULT_PASSWORD = "pw123456"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'blog.db'}",
        jwt_secret_key=TEST_SECRET_KEY,
        password_hash_rounds=4,  # bcrypt minimum, keeps tests fast
    )


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture()
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    # Entering the client runs the lifespan, which applies migrations
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def credentials(app: FastAPI) -> CredentialService:
    return app.state.credentials


@pytest.fixture()
def db(client: TestClient, app: FastAPI) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = app.state.database.SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_user(client: TestClient, app: FastAPI, credentials: CredentialService) -> Callable[..., User]:
    """Insert a user directly and return it (detached, attributes loaded)."""

    def _make_user(username: str, role: Role = Role.MEMBER, password: str = DEFAULT_PASSWORD) -> User:
        with app.state.database.SessionLocal() as session:
            user = User(
                username=username,
                email=f"{username}@example.com",
                password_hash=credentials.hash_password(password),
                role=role,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _make_user


@pytest.fixture()
def auth_headers(credentials: CredentialService) -> Callable[[User], dict[str, str]]:
    def _auth_headers(user: User) -> dict[str, str]:
        token = credentials.issue_token(user.id, user.username)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture()
def alice(make_user) -> User:
    return make_user("alice")


@pytest.fixture()
def bob(make_user) -> User:
    return make_user("bob")


@pytest.fixture()
def admin(make_user) -> User:
    return make_user("root", role=Role.ADMIN)


@pytest.fixture()
def alice_post(client: TestClient, alice: User, auth_headers) -> dict:
    response = client.post(
        "/api/posts",
        headers=auth_headers(alice),
        json={"title": "Hi", "content": "World"},
    )
    assert response.status_code == 201
    return response.json()
