"""
Posts Router
============
POST   /api/v1/posts                         — Create a post.
DELETE /api/v1/posts/{post_id}               — Delete an own post.
POST   /api/v1/posts/{post_id}/like          — Like (idempotent).
DELETE /api/v1/posts/{post_id}/like          — Remove like (idempotent).
GET    /api/v1/posts/{post_id}/comments      — Comments, oldest first.
POST   /api/v1/posts/{post_id}/comments      — Add a comment.
DELETE /api/v1/comments/{comment_id}         — Delete an own comment.
GET    /api/v1/feed                          — Posts from followed users and self.

Like and unlike return the fresh count, so clients can update
optimistically and reconcile with the response.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.auth import get_authenticated_user
from app.config import get_settings
from app.db.supabase import get_supabase_client
from app.models.post import Comment, CommentCreate, LikeState, Post, PostCreate, PostPage
from app.services.social import get_social_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["posts"])


def _not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": f"{what} not found", "code": "not_found"},
    )


def _require_post(db, post_id: str) -> None:
    result = db.table("posts").select("id").eq("id", post_id).limit(1).execute()
    if not result.data:
        raise _not_found("Post")


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

@router.post(
    "/posts",
    response_model=Post,
    status_code=status.HTTP_201_CREATED,
    summary="Create a post",
)
async def create_post(
    body: PostCreate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> Post:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    row = {"user_id": user["id"], "content": body.content, "image_url": body.image_url}
    result = db.table("posts").insert(row).execute()

    if not result.data:
        logger.error("Failed to insert post for user %s", user["id"])
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save post", "code": "db_error"},
        )
    return Post(**result.data[0])


@router.delete(
    "/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an own post",
)
async def delete_post(
    post_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> None:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    result = (
        db.table("posts")
        .delete()
        .eq("id", post_id)
        .eq("user_id", user["id"])
        .execute()
    )
    if not result.data:
        raise _not_found("Post")
    logger.info("User %s deleted post %s", user["id"], post_id)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

@router.post("/posts/{post_id}/like", response_model=LikeState, summary="Like a post")
async def like_post(
    post_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> LikeState:
    user = get_authenticated_user(authorization)
    _require_post(get_supabase_client(), post_id)
    return await get_social_service().like(post_id, user["id"])


@router.delete("/posts/{post_id}/like", response_model=LikeState, summary="Unlike a post")
async def unlike_post(
    post_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> LikeState:
    user = get_authenticated_user(authorization)
    return await get_social_service().unlike(post_id, user["id"])


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@router.get(
    "/posts/{post_id}/comments",
    response_model=list[Comment],
    summary="List comments on a post",
)
async def list_comments(
    post_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[Comment]:
    get_authenticated_user(authorization)
    db = get_supabase_client()

    result = (
        db.table("comments")
        .select("id, post_id, user_id, content, created_at")
        .eq("post_id", post_id)
        .order("created_at", desc=False)
        .execute()
    )
    rows = result.data or []

    authors = await get_social_service().profile_summaries(row["user_id"] for row in rows)
    comments = []
    for row in rows:
        author = authors.get(row["user_id"])
        comments.append(Comment(
            **row,
            username=author.username if author else None,
            avatar_url=author.avatar_url if author else None,
        ))
    return comments


@router.post(
    "/posts/{post_id}/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a post",
)
async def create_comment(
    post_id: str,
    body: CommentCreate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> Comment:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    _require_post(db, post_id)
    result = (
        db.table("comments")
        .insert({"post_id": post_id, "user_id": user["id"], "content": body.content})
        .execute()
    )
    if not result.data:
        logger.error("Failed to insert comment on post %s", post_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save comment", "code": "db_error"},
        )
    return Comment(**result.data[0])


@router.delete(
    "/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an own comment",
)
async def delete_comment(
    comment_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> None:
    user = get_authenticated_user(authorization)
    db = get_supabase_client()

    result = (
        db.table("comments")
        .delete()
        .eq("id", comment_id)
        .eq("user_id", user["id"])
        .execute()
    )
    if not result.data:
        raise _not_found("Comment")


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------

@router.get("/feed", response_model=PostPage, summary="Posts from people you follow")
async def get_feed(
    page: int = Query(default=0, ge=0),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> PostPage:
    user = get_authenticated_user(authorization)
    return await get_social_service().feed(user["id"], page, get_settings().page_size_posts)
