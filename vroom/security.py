from __future__ import annotations

from datetime import UTC, datetime, timedelta

import bcrypt
from jose import jwt

from .config import settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(user_id: int, email: str) -> str:
    """
    HS256 bearer token carrying the caller's id and email.
    Verified by vroom.api.auth on every protected route.
    """
    now = datetime.now(UTC)
    payload = {
        "iss": "vroom",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)).timestamp()),
        "typ": "access",
        "id": str(user_id),
        "email": email,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
