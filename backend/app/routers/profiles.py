"""
Profiles Router
===============
GET    /api/v1/profiles/me                   — Own profile (created on first visit).
PATCH  /api/v1/profiles/me                   — Edit username, bio, avatar URL.
POST   /api/v1/profiles/me/avatar            — Upload a new avatar image.
GET    /api/v1/profiles/search               — Find people by username.
GET    /api/v1/profiles/{id_or_username}     — Public profile with follow counts.
GET    /api/v1/profiles/{user_id}/workouts   — A user's workouts.
GET    /api/v1/profiles/{user_id}/posts      — A user's posts with like state.
POST   /api/v1/profiles/{user_id}/follow     — Follow.
DELETE /api/v1/profiles/{user_id}/follow     — Unfollow.
GET    /api/v1/profiles/{user_id}/followers  — Paged followers.
GET    /api/v1/profiles/{user_id}/following  — Paged followed users.

Avatars live in the public ``avatars`` bucket at ``<user_id>/avatar.<ext>``;
re-uploading overwrites the object, and the public URL is written back to
the profile row.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, File, Header, HTTPException, Query, UploadFile, status
from postgrest.exceptions import APIError
from storage3.utils import StorageException

from app.auth import get_authenticated_user
from app.config import get_settings
from app.db.supabase import UNIQUE_VIOLATION, get_supabase_client
from app.models.post import PostPage
from app.models.profile import (
    FollowPage,
    FollowState,
    Profile,
    ProfileDetail,
    ProfileSummary,
    ProfileUpdate,
)
from app.models.workout import Workout
from app.services.social import CannotFollowSelfError, UnknownUserError, get_social_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/profiles", tags=["profiles"])

_PROFILE_COLUMNS = "id, username, full_name, bio, avatar_url, created_at"

_IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _not_found(message: str = "Profile not found") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": message, "code": "not_found"},
    )


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _find_profile(db, id_or_username: str) -> Optional[dict]:
    query = db.table("profiles").select(_PROFILE_COLUMNS)
    if _is_uuid(id_or_username):
        query = query.eq("id", id_or_username)
    else:
        query = query.eq("username", id_or_username)
    result = query.maybe_single().execute()
    return result.data if result else None


def _get_or_create_profile(db, user_id: str) -> dict:
    existing = _find_profile(db, user_id)
    if existing:
        return existing

    result = db.table("profiles").insert({"id": user_id}).execute()
    if not result.data:
        logger.error("Failed to create profile for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to create profile", "code": "db_error"},
        )
    logger.info("Created empty profile for user %s", user_id)
    return result.data[0]


def _avatar_extension(upload: UploadFile) -> str:
    """Pick the file extension from the content type, else the filename."""
    content_type = (upload.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=422,
            detail={"message": "Avatar must be an image", "code": "invalid_file_type"},
        )
    if content_type in _IMAGE_EXTENSIONS:
        return _IMAGE_EXTENSIONS[content_type]
    filename = upload.filename or ""
    if "." in filename:
        return filename.rsplit(".", 1)[1].lower()
    return content_type.split("/", 1)[1]


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------

@router.get("/me", response_model=ProfileDetail, summary="Get own profile")
async def get_my_profile(
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ProfileDetail:
    """Return the caller's profile, inserting an empty one on first visit."""
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    profile = _get_or_create_profile(db, user["id"])
    followers, following = await get_social_service().counts(user["id"])

    return ProfileDetail(**profile, followers=followers, following=following, is_me=True)


@router.patch(
    "/me",
    response_model=Profile,
    summary="Edit own profile",
    responses={409: {"description": "Username already taken"}},
)
async def update_my_profile(
    body: ProfileUpdate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> Profile:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    profile = _get_or_create_profile(db, user["id"])
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        return Profile(**profile)

    try:
        result = db.table("profiles").update(changes).eq("id", user["id"]).execute()
    except APIError as exc:
        if exc.code == UNIQUE_VIOLATION:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Username is already taken", "code": "username_taken"},
            ) from exc
        raise

    if not result.data:
        raise _not_found()
    return Profile(**result.data[0])


@router.post(
    "/me/avatar",
    response_model=Profile,
    summary="Upload avatar",
    responses={
        413: {"description": "Image too large"},
        422: {"description": "Not an image"},
        502: {"description": "Storage upload failed"},
    },
)
async def upload_avatar(
    file: UploadFile = File(..., description="Avatar image"),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> Profile:
    """Store the image in the avatars bucket and save its public URL."""
    user = get_authenticated_user(authorization)
    settings = get_settings()

    extension = _avatar_extension(file)
    data = await file.read()
    if len(data) > settings.avatar_max_bytes:
        raise HTTPException(
            status_code=413,
            detail={
                "message": f"Avatar must be at most {settings.avatar_max_bytes} bytes",
                "code": "file_too_large",
            },
        )

    db = get_supabase_client()
    path = f"{user['id']}/avatar.{extension}"
    bucket = db.storage.from_(settings.avatar_bucket)

    try:
        bucket.upload(path, data, {"content-type": file.content_type, "upsert": "true"})
    except StorageException as exc:
        logger.error("Avatar upload failed for user %s: %s", user["id"], exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": "Could not store avatar", "code": "storage_error"},
        ) from exc

    public_url = bucket.get_public_url(path)

    _get_or_create_profile(db, user["id"])
    result = (
        db.table("profiles")
        .update({"avatar_url": public_url})
        .eq("id", user["id"])
        .execute()
    )
    if not result.data:
        raise _not_found()

    logger.info("User %s uploaded a new avatar", user["id"])
    return Profile(**result.data[0])


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@router.get("/search", response_model=list[ProfileSummary], summary="Search people")
async def search_profiles(
    q: str = Query(default="", max_length=100, description="Part of a username, or a user id"),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[ProfileSummary]:
    """Usernames containing *q*. With an empty *q*, list other people."""
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    term = q.strip()
    query = (
        db.table("profiles")
        .select("id, username, avatar_url, bio")
        .order("username")
        .limit(limit or get_settings().search_limit)
    )
    if not term:
        query = query.neq("id", user["id"])
    elif _is_uuid(term):
        query = query.or_(f"id.eq.{term},username.ilike.%{term}%")
    else:
        query = query.ilike("username", f"%{term}%")

    result = query.execute()
    return [ProfileSummary(**row) for row in (result.data or [])]


# ---------------------------------------------------------------------------
# Public profiles
# ---------------------------------------------------------------------------

@router.get(
    "/{id_or_username}",
    response_model=ProfileDetail,
    summary="Get a profile",
    responses={404: {"description": "No profile with that id or username"}},
)
async def get_profile(
    id_or_username: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> ProfileDetail:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    profile = _find_profile(db, id_or_username)
    if not profile:
        raise _not_found()

    social = get_social_service()
    followers, following = await social.counts(profile["id"])
    is_me = profile["id"] == user["id"]
    is_following = False if is_me else await social.is_following(user["id"], profile["id"])

    return ProfileDetail(
        **profile,
        followers=followers,
        following=following,
        is_me=is_me,
        is_following=is_following,
    )


@router.get("/{user_id}/workouts", response_model=list[Workout], summary="A user's workouts")
async def list_user_workouts(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[Workout]:
    get_authenticated_user(authorization)
    db = get_supabase_client()

    result = (
        db.table("workouts")
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return Workout.from_rows(result.data or [])


@router.get("/{user_id}/posts", response_model=PostPage, summary="A user's posts")
async def list_user_posts(
    user_id: str,
    page: int = Query(default=0, ge=0),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> PostPage:
    user = get_authenticated_user(authorization)
    return await get_social_service().posts_page(
        user_id, page, get_settings().page_size_posts, viewer_id=user["id"]
    )


# ---------------------------------------------------------------------------
# Follow graph
# ---------------------------------------------------------------------------

@router.post(
    "/{user_id}/follow",
    response_model=FollowState,
    summary="Follow a user",
    responses={
        404: {"description": "No such user"},
        422: {"description": "Cannot follow yourself"},
    },
)
async def follow_user(
    user_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> FollowState:
    user = get_authenticated_user(authorization)
    social = get_social_service()

    try:
        await social.follow(user["id"], user_id)
    except CannotFollowSelfError as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": "You cannot follow yourself", "code": "cannot_follow_self"},
        ) from exc
    except UnknownUserError as exc:
        raise _not_found("User not found") from exc

    followers, _ = await social.counts(user_id)
    return FollowState(user_id=user_id, following=True, followers=followers)


@router.delete("/{user_id}/follow", response_model=FollowState, summary="Unfollow a user")
async def unfollow_user(
    user_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> FollowState:
    user = get_authenticated_user(authorization)
    social = get_social_service()

    await social.unfollow(user["id"], user_id)
    followers, _ = await social.counts(user_id)
    return FollowState(user_id=user_id, following=False, followers=followers)


@router.get("/{user_id}/followers", response_model=FollowPage, summary="Who follows this user")
async def list_followers(
    user_id: str,
    page: int = Query(default=0, ge=0),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> FollowPage:
    get_authenticated_user(authorization)
    return await get_social_service().list_followers(
        user_id, page, get_settings().page_size_follows
    )


@router.get("/{user_id}/following", response_model=FollowPage, summary="Who this user follows")
async def list_following(
    user_id: str,
    page: int = Query(default=0, ge=0),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> FollowPage:
    get_authenticated_user(authorization)
    return await get_social_service().list_following(
        user_id, page, get_settings().page_size_follows
    )
