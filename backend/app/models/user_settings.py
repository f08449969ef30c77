"""
User Settings Schemas
=====================
Notification, visibility, theme and language preferences, stored one row
per user in ``user_settings`` (keyed by the user id). Users who never
saved settings get the defaults below.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Visibility = Literal["public", "followers", "private"]
Theme = Literal["system", "light", "dark"]
Language = Literal["nb", "en"]


class Preferences(BaseModel):
    email_notifications: bool = True
    inapp_notifications: bool = True
    post_visibility: Visibility = "public"
    profile_visibility: Visibility = "public"
    comments_visibility: Visibility = "public"
    theme: Theme = "system"
    language: Language = "nb"


class SettingsPayload(BaseModel):
    """The settings page: profile basics plus preferences."""

    username: Optional[str] = Field(default=None, max_length=40, pattern=r"^[\w.\-]+$")
    bio: Optional[str] = Field(default=None, max_length=500)
    preferences: Preferences = Field(default_factory=Preferences)

    @field_validator("username", "bio", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v
