"""
Post, Like and Comment Schemas
==============================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.profile import ProfileSummary


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class PostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator("content", mode="before")
    @classmethod
    def _strip_content(cls, v: Any) -> Any:
        return _strip(v)


class Post(BaseModel):
    """A row from the ``posts`` table."""

    id: str
    user_id: str
    content: str
    image_url: Optional[str] = None
    created_at: datetime


class PostWithLikes(Post):
    like_count: int = 0
    liked_by_me: bool = False
    # Filled in for the feed, where posts come from many users
    author: Optional[ProfileSummary] = None


class PostPage(BaseModel):
    items: list[PostWithLikes]
    page: int
    has_more: bool


class LikeState(BaseModel):
    post_id: str
    liked: bool
    like_count: int


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)

    @field_validator("content", mode="before")
    @classmethod
    def _strip_content(cls, v: Any) -> Any:
        return _strip(v)


class Comment(BaseModel):
    id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime
    username: Optional[str] = None
    avatar_url: Optional[str] = None
