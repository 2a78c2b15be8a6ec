"""
Pytest configuration and shared fixtures.

Every test gets a fresh SQLite database (aiosqlite) in its tmp_path, so
nothing here needs a running PostgreSQL server.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import asyncio
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from taskhub import models  # noqa: F401
from taskhub.core.config import Settings
from taskhub.db.base import Base
from taskhub.db.session import build_engine, build_session_factory
from taskhub.main import create_app
from taskhub.models.enums import UserRole
from taskhub.repositories.user_repository import UserRepository

TEST_PASSWORD = "secret123"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "db: uses a throwaway SQLite database")
    config.addinivalue_line("markers", "api: drives the ASGI app through TestClient")


def make_settings(database_url: str, **overrides) -> Settings:
    values = {
        "DATABASE_URL": database_url,
        "SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
        "CONFIGURE_LOGGING": False,
        # Generous default; the rate-limit tests build their own app
        "AUTH_RATE_LIMIT_MAX_ATTEMPTS": 1000,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'taskhub-test.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = build_engine(database_url)

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    yield build_session_factory(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
def test_settings(database_url):
    return make_settings(database_url)


@pytest.fixture
def app(test_settings, session_factory):
    return create_app(settings=test_settings, session_factory=session_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def create_user_sync(
    session_factory,
    name: str,
    email: str,
    role: str = UserRole.MEMBER.value,
    password: str = TEST_PASSWORD,
):
    """Insert a user directly and return it (detached, attributes loaded)."""

    async def _create():
        async with session_factory() as db:
            user = await UserRepository(db).create(name=name, email=email, password=password, role=role)
            await db.commit()
            return user

    return asyncio.run(_create())


def register(client: TestClient, name: str, email: str, password: str = TEST_PASSWORD) -> dict:
    response = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_task(client: TestClient, token: str, expected_status: Optional[int] = 201, **fields) -> dict:
    body = {"title": "Task"}
    body.update(fields)
    response = client.post("/api/tasks", json=body, headers=auth_headers(token))
    if expected_status is not None:
        assert response.status_code == expected_status, response.text
    return response.json()
