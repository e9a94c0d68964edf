# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tasktrack.config import Settings
from tasktrack.main import create_app
from tasktrack.sql_store import SqlStore
from tasktrack.store import MemoryStore, Store

PASSWORD = "secret123"


@pytest.fixture()
def settings() -> Settings:
    # cheapest bcrypt cost keeps the suite fast
    return Settings(bcrypt_rounds=4)


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest, settings: Settings, tmp_path: Path) -> Iterator[Store]:
    """Every API test runs once per backend."""
    if request.param == "memory":
        yield MemoryStore(session_days=settings.session_days)
        return
    s = SqlStore(f"sqlite:///{tmp_path / 'tasks.db'}", session_days=settings.session_days)
    yield s
    s.close()


@pytest.fixture()
def app(settings: Settings, store: Store) -> FastAPI:
    return create_app(settings, store=store)


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def make_client(app: FastAPI) -> Callable[[], TestClient]:
    """Fresh client (own cookie jar) against the same app."""
    return lambda: TestClient(app)


def register(client: TestClient, email: str, username: str = "alice", password: str = PASSWORD):
    return client.post("/api/register", json={"username": username, "email": email, "password": password})


def login(client: TestClient, email: str, password: str = PASSWORD):
    return client.post("/api/login", json={"email": email, "password": password})


@pytest.fixture()
def logged_in(client: TestClient) -> TestClient:
    assert register(client, "alice@example.com").status_code == 200
    assert login(client, "alice@example.com").status_code == 200
    return client
