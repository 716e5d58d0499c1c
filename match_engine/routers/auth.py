import logging

import jwt
from fastapi import Header, HTTPException, status

from ..config import get_settings
from ..models.user import is_usable_user_key

LOGGER = logging.getLogger("uvicorn.error")


def _extract_token(authorization: str) -> str:
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")
    return token


def decode_user_id(token: str) -> str:
    """Return the ``sub`` claim of a verified token, or an empty string."""

    settings = get_settings()
    if not settings.jwt_secret:
        LOGGER.error("JWT_SECRET is not configured; rejecting bearer token")
        return ""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        LOGGER.debug("Bearer token rejected: %s", exc)
        return ""
    return str(payload.get("sub") or "").strip()


async def require_current_user_id(authorization: str = Header(default="")) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="authorization required")
    user_id = decode_user_id(_extract_token(authorization))
    if not user_id or not is_usable_user_key(user_id):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token")
    return user_id
