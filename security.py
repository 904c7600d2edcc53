from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer
from passlib.context import CryptContext

import config

ROLE_USER = "user"
ROLE_ADMIN = "admin"

serializer = URLSafeTimedSerializer(config.SECRET_KEY, salt="donation-session")


pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_session_token(user_id: str, role: str) -> str:
    """
    Store user_id + role in the signed token.
    Example data:
        {"user_id": "9f1c...", "role": "admin"}
    """
    return serializer.dumps({"user_id": user_id, "role": role})


def verify_session_token(token: str, max_age_seconds: Optional[int] = None):
    """
    Returns dict {'user_id': ..., 'role': ...} if valid,
    or None if token is invalid/expired.
    """
    if max_age_seconds is None:
        max_age_seconds = config.TOKEN_MAX_AGE_SECONDS
    try:
        data = serializer.loads(token, max_age=max_age_seconds)
    except BadData:
        return None
    if not isinstance(data, dict) or "user_id" not in data or "role" not in data:
        return None
    return data


@dataclass(frozen=True)
class Principal:
    """Who is calling: anonymous, a registered user, or an administrator."""

    role: Optional[str] = None
    id: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.role is None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_user(self) -> bool:
        return self.role == ROLE_USER


ANONYMOUS = Principal()
