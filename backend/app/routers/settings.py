"""
Settings Router
===============
GET /api/v1/settings — Username, bio and preferences.
PUT /api/v1/settings — Save them.

Preferences missing from ``user_settings`` fall back to the defaults in
``Preferences``; the row is only written on the first save.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header, HTTPException, status
from postgrest.exceptions import APIError

from app.auth import get_authenticated_user
from app.db.supabase import UNIQUE_VIOLATION, get_supabase_client
from app.models.user_settings import Preferences, SettingsPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])

_PREFERENCE_COLUMNS = ", ".join(["id", *Preferences.model_fields])


@router.get("", response_model=SettingsPayload, summary="Get settings")
async def get_user_settings(
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> SettingsPayload:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    profile = (
        db.table("profiles")
        .select("id, username, bio")
        .eq("id", user["id"])
        .maybe_single()
        .execute()
    )
    stored = (
        db.table("user_settings")
        .select(_PREFERENCE_COLUMNS)
        .eq("id", user["id"])
        .maybe_single()
        .execute()
    )

    profile_row = (profile.data if profile else None) or {}
    settings_row = (stored.data if stored else None) or {}
    preferences = Preferences(
        **{k: v for k, v in settings_row.items() if k in Preferences.model_fields and v is not None}
    )

    return SettingsPayload(
        username=profile_row.get("username"),
        bio=profile_row.get("bio"),
        preferences=preferences,
    )


@router.put(
    "",
    response_model=SettingsPayload,
    summary="Save settings",
    responses={409: {"description": "Username already taken"}},
)
async def save_user_settings(
    body: SettingsPayload,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> SettingsPayload:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    try:
        db.table("profiles").upsert(
            {"id": user["id"], "username": body.username, "bio": body.bio},
            on_conflict="id",
        ).execute()
    except APIError as exc:
        if exc.code == UNIQUE_VIOLATION:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Username is already taken", "code": "username_taken"},
            ) from exc
        raise

    db.table("user_settings").upsert(
        {"id": user["id"], **body.preferences.model_dump()},
        on_conflict="id",
    ).execute()

    logger.info("Saved settings for user %s", user["id"])
    return body
