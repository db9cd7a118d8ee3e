import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def configure_hashing(rounds: int) -> None:
    pwd_context.update(bcrypt__rounds=rounds)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


@dataclass(frozen=True)
class SessionIdentity:
    user_id: int
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_at: datetime
    token_type: str = "bearer"


class TokenSigner:
    """
    Issues and verifies signed, time-bound session tokens (JWT).

    The signing key is fixed for the lifetime of the signer; build one at
    startup and share it between requests.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 30):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, user) -> IssuedToken:
        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=self.expire_minutes)
        to_encode = {
            "sub": str(user.id),
            "email": user.email,
            "name": user.name,
            "iat": now,
            "exp": expire,
        }
        encoded_jwt = jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(access_token=encoded_jwt, expires_at=expire)

    def resolve(self, token: Optional[str]) -> Optional[SessionIdentity]:
        """Return the identity embedded in `token`, or None if it is absent or invalid."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug("Rejected session token: %s", e)
            return None

        sub = payload.get("sub")
        try:
            user_id = int(sub)
        except (TypeError, ValueError):
            return None
        return SessionIdentity(user_id=user_id, email=payload.get("email"), name=payload.get("name"))
