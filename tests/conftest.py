"""Shared fixtures: a throwaway SQLite repository and an API client bound to it."""

import pytest
from fastapi.testclient import TestClient

from haulops.config import settings
from haulops.db import Repository
from haulops.server import app, get_repo

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def repo(tmp_path):
    repository = Repository(f"sqlite:///{tmp_path / 'haulops-test.db'}")
    repository.init_db()
    return repository


@pytest.fixture
def client(repo, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_TOKEN", ADMIN_TOKEN)
    app.dependency_overrides[get_repo] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
