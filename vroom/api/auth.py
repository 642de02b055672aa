import logging

from fastapi import HTTPException, Request, status
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from vroom import config

settings = config.get_settings()
log = logging.getLogger(__name__)


def _bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization") or request.headers.get("Authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip()


def decode_access_token(token: str) -> int:
    """
    Validate an access token and return the user id from its 'id' claim.

    Raises HTTPException(401) for expired, malformed or wrongly typed tokens.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_iat": False}  # Avoid clock skew issues between devices
        )
    except ExpiredSignatureError:
        log.info("[Auth] Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired"
        )
    except JWTError as e:
        log.info(f"[Auth] Invalid token - {type(e).__name__}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    if payload.get("typ") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    user_id = payload.get("id")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token (no id)"
        )

    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )


async def get_current_user_id(request: Request) -> int:
    """
    Extract and validate the JWT from the Authorization header.
    Returns the caller's user id, which downstream handlers trust as-is.

    This is used as a dependency in protected routes.
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return decode_access_token(token)


async def get_optional_user_id(request: Request) -> int | None:
    """Like get_current_user_id, but anonymous or invalid callers get None."""
    token = _bearer_token(request)
    if token is None:
        return None
    try:
        return decode_access_token(token)
    except HTTPException:
        return None
