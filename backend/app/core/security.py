"""
Security utilities for admin authorization.

This module provides JWT creation and validation (using python-jose).
Admin credentials live in the admin panel; this backend only needs to
verify the tokens the panel hands out, and to mint one for operators
(see scripts/create_admin_token.py).

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- JWT Standard: https://jwt.io/introduction
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings


ADMIN_ROLE = "admin"


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    What's in the token?
    --------------------
    - sub (subject): admin username
    - role: must be "admin" for the admin routes
    - exp (expiration): when the token stops being accepted
    - iat (issued at): when the token was created

    Args:
        data: Claims to include in the token ("sub" and "role" expected)
        expires_delta: Lifetime of the token.
                       Defaults to ACCESS_TOKEN_EXPIRE_MINUTES from settings

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "admin", "role": "admin"})
        >>> decode_access_token(token)["role"]
        'admin'
    """
    to_encode = data.copy()

    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": now + expires_delta, "iat": now})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT access token.

    Signature and expiry are both checked by python-jose.

    Args:
        token: The encoded JWT

    Returns:
        The token claims, or None if the token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
