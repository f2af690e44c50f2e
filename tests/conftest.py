"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth import security
from core.config import Settings
from main import create_app

from .fakes import InMemoryStore, feature

DATABASE_URL = "https://urwaldpate-test.firebaseio.com"
SIGNING_KEY = "test-signing-key"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=DATABASE_URL,
        signing_key=SIGNING_KEY,
        basic_username="admin",
        basic_password="hunter22",
        realm="Urwaldpate",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(
        {
            "biesenthalerbecken": {
                "features": [feature(10), feature(20), feature(30)],
            },
            "wildnispate": {
                "gorinsee": {"features": [feature(7), feature(8)]},
            },
        }
    )


@pytest.fixture
def app(settings: Settings, store: InMemoryStore):
    return create_app(settings, store)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    token = security.issue_token(signing_key=SIGNING_KEY, subject="operator", expires_in_s=300)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def basic_auth() -> tuple[str, str]:
    return ("admin", "hunter22")
