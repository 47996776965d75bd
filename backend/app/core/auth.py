"""
Authentication dependencies for FastAPI.

Admin routes (content CRUD, cache management, dashboard) are protected by
``require_admin``. Public chat routes are anonymous and identified only by
their ``session_id``.
"""

from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import ADMIN_ROLE, decode_access_token

# ================================
# Bearer Configuration
# ================================

# auto_error=False so we can answer with our own 401 body instead of 403
bearer_scheme = HTTPBearer(auto_error=False)


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """
    Dependency that only lets admin tokens through.

    Header format: "Authorization: Bearer <token>"

    Returns:
        The decoded token claims

    Raises:
        HTTPException 401: missing, malformed or expired token
        HTTPException 403: valid token without the admin role
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise unauthorized

    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise unauthorized

    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )

    return payload
