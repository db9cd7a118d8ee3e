from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or a `.env` file.

    `DATABASE_URL` and `SECRET_KEY` have no defaults: building the settings
    without them raises a validation error, so the process refuses to start.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str
    """SQLAlchemy connection string (e.g. `sqlite:///./tasks.db`)."""

    secret_key: str
    """Key used to sign session tokens."""

    algorithm: str = "HS256"
    """JWT signing algorithm."""

    access_token_expire_minutes: int = 30
    """Lifetime of an issued session token."""

    bcrypt_rounds: int = 12
    """Work factor for password hashing."""

    auth_rate_limit: str = "10/minute"
    """Per-client limit applied to the register and login endpoints."""

    cors_origins: List[str] = ["*"]
    allowed_hosts: List[str] = ["localhost", "127.0.0.1"]

    session_cookie_secure: bool = False
    """Set the `Secure` flag on the session cookie (enable behind HTTPS)."""

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
