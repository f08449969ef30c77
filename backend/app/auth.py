"""
Authentication
==============
Resolves the ``Authorization: Bearer <jwt>`` header issued by Supabase Auth
to the calling user. Shared by every router.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.db.supabase import get_supabase_client

logger = logging.getLogger(__name__)


def get_authenticated_user(authorization: str) -> dict:
    """Verify the JWT with Supabase Auth and return ``{"id", "email"}``.

    Raises HTTPException 401 if the token is invalid or missing.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Missing or invalid authorization header", "code": "auth_required"},
        )

    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Empty bearer token", "code": "auth_required"},
        )

    db = get_supabase_client()

    try:
        auth_response = db.auth.get_user(token)
    except Exception as exc:
        logger.warning("Auth token verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid or expired token", "code": "auth_invalid"},
        ) from exc

    if not auth_response or not auth_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "User not found for token", "code": "auth_invalid"},
        )

    return {"id": auth_response.user.id, "email": auth_response.user.email}
