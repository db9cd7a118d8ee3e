import pytest
from pydantic import ValidationError

from config import Settings


def test_database_url_and_secret_are_required(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("SECRET_KEY", raising=False)

    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)

    missing = {err["loc"][0] for err in exc_info.value.errors()}
    assert missing == {"database_url", "secret_key"}


def test_settings_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./env.db")
    monkeypatch.setenv("SECRET_KEY", "from-env")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "5")

    settings = Settings(_env_file=None)
    assert settings.database_url == "sqlite:///./env.db"
    assert settings.secret_key == "from-env"
    assert settings.access_token_expire_minutes == 5
    assert settings.algorithm == "HS256"
