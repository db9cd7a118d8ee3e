from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import Settings

PASSWORD = "secret123"


@pytest.fixture()
def settings(settings):
    settings.auth_rate_limit = "3/minute"
    return settings


def test_login_is_rate_limited(client) -> None:
    body = {"email": "ada@taskflow.io", "password": PASSWORD}
    for _ in range(3):
        assert client.post("/auth/login", json=body).status_code == 401

    res = client.post("/auth/login", json=body)
    assert res.status_code == 429
    assert res.json() == {"message": "Too many requests"}


def test_each_app_keeps_its_own_limit(app, tmp_path: Path) -> None:
    other = create_app(
        Settings(
            _env_file=None,
            database_url=f"sqlite:///{tmp_path / 'other.db'}",
            secret_key="test-secret-key",
            bcrypt_rounds=4,
            allowed_hosts=["testserver"],
            auth_rate_limit="100/minute",
        )
    )
    body = {"email": "ada@taskflow.io", "password": PASSWORD}

    with TestClient(app) as c:
        codes = [c.post("/auth/login", json=body).status_code for _ in range(4)]
    assert codes == [401, 401, 401, 429]

    with TestClient(other) as c:
        assert c.post("/auth/login", json=body).status_code == 401

    other.state.engine.dispose()
