"""
Profile and Follow Schemas
==========================
Pydantic models for profiles, avatar uploads and the follow graph.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class Profile(BaseModel):
    """A row from the ``profiles`` table."""

    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class ProfileDetail(Profile):
    """Profile page payload: the profile plus its follow counts."""

    followers: int = 0
    following: int = 0
    is_me: bool = False
    is_following: bool = False


class ProfileUpdate(BaseModel):
    """Editable profile fields. Blank strings clear the field."""

    username: Optional[str] = Field(default=None, max_length=40, pattern=r"^[\w.\-]+$")
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator("username", "bio", "avatar_url", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class ProfileSummary(BaseModel):
    """Just enough of a profile to render a list row."""

    id: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


# ---------------------------------------------------------------------------
# Follows
# ---------------------------------------------------------------------------

class FollowEdge(BaseModel):
    """One follower or followed user, with when the edge was created."""

    id: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    since: Optional[datetime] = None


class FollowPage(BaseModel):
    items: list[FollowEdge]
    page: int
    has_more: bool


class FollowState(BaseModel):
    """Returned after follow / unfollow so the button and counter can update."""

    user_id: str
    following: bool
    followers: int
