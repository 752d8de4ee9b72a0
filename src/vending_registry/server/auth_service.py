"""
Admin bearer tokens.

Tokens are HS256 JWTs signed with JWT_SECRET; the payload carries ``sub``
and ``role``. Only ``role == "admin"`` may use the review endpoints.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from .config import Settings

ADMIN_ROLE = "admin"


def create_access_token(
    data: Dict[str, Any],
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to embed (``sub`` and ``role`` at minimum)
        settings: Application settings holding the secret and algorithm
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded token string
    """
    to_encode = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT access token.

    Returns:
        The claims if the signature and expiry are valid, otherwise None
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
