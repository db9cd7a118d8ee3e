from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import Settings

PASSWORD = "secret123"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings against a throwaway SQLite file, with cheap bcrypt rounds."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'tasks.db'}",
        secret_key="test-secret-key",
        bcrypt_rounds=4,
        allowed_hosts=["testserver"],
    )


@pytest.fixture()
def app(settings: Settings):
    application = create_app(settings)
    yield application
    application.state.engine.dispose()


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db(app):
    session = app.state.sessionmaker()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def login_as(client):
    """
    Register (if needed) and log in, returning bearer headers.

    The session cookie set by login is dropped so that each request is
    authenticated only by the headers it is given.
    """

    def _login(email: str, password: str = PASSWORD, name=None) -> dict:
        client.post("/auth/register", json={"email": email, "password": password, "name": name})
        res = client.post("/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {res.json()['session']['accessToken']}"}

    return _login
