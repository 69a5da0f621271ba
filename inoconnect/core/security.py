"""
Identity provider adapter.

Credential flows live outside this service; the identity provider hands the
client a signed JWT whose ``sub`` claim is the stable user id. This module
verifies those tokens and can mint them for tooling and tests.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from .config import settings

logger = logging.getLogger(__name__)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for a user id.

    Args:
        user_id: Stable id of the user (becomes the ``sub`` claim)
        expires_delta: Optional lifetime, defaults to JWT_EXPIRATION_MINUTES

    Returns:
        str: Encoded JWT
    """
    if not user_id:
        raise ValueError("user_id is required")
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: Optional[str]) -> Optional[str]:
    """
    Validate a token and return the user id it was issued for.

    Args:
        token: Encoded JWT

    Returns:
        Optional[str]: The user id if the token is valid, None otherwise
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"[AUTH] Rejected token: {e}")
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return user_id
