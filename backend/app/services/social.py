"""
Social Service
==============
Follow graph, likes and post listings shared by the profile, post and feed
endpoints.

Supabase joins across ``follows`` and ``profiles`` depend on foreign-key
names that differ between environments, so lists are built in two steps:
fetch a page of ids, then resolve those ids with one ``in`` query.

Pages ask for ``page_size + 1`` rows. The extra row only tells us whether
another page exists and is never returned.
"""

from __future__ import annotations

import logging
from typing import Iterable

from postgrest.exceptions import APIError

from app.db.supabase import FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, get_supabase_client
from app.models.post import LikeState, PostPage, PostWithLikes
from app.models.profile import FollowEdge, FollowPage, ProfileSummary

logger = logging.getLogger(__name__)

_POST_COLUMNS = "id, user_id, content, image_url, created_at"
_SUMMARY_COLUMNS = "id, username, avatar_url, bio"


class CannotFollowSelfError(Exception):
    """A user tried to follow themselves."""


class UnknownUserError(Exception):
    """The user to follow has no account."""


class SocialService:
    """Reads and writes ``follows``, ``posts`` and ``post_likes``."""

    def __init__(self) -> None:
        self._db = get_supabase_client()

    # ------------------------------------------------------------------
    # Follow graph
    # ------------------------------------------------------------------

    async def is_following(self, follower_id: str, following_id: str) -> bool:
        result = (
            self._db.table("follows")
            .select("follower_id")
            .eq("follower_id", follower_id)
            .eq("following_id", following_id)
            .limit(1)
            .execute()
        )
        return bool(result.data)

    async def follow(self, follower_id: str, following_id: str) -> None:
        """Create the edge. Following someone twice is not an error.

        Raises CannotFollowSelfError or UnknownUserError.
        """
        if follower_id == following_id:
            raise CannotFollowSelfError(follower_id)
        try:
            self._db.table("follows").insert(
                {"follower_id": follower_id, "following_id": following_id}
            ).execute()
        except APIError as exc:
            if exc.code == FOREIGN_KEY_VIOLATION:
                raise UnknownUserError(following_id) from exc
            if exc.code != UNIQUE_VIOLATION:
                raise
            logger.debug("User %s already follows %s", follower_id, following_id)

    async def unfollow(self, follower_id: str, following_id: str) -> None:
        (
            self._db.table("follows")
            .delete()
            .eq("follower_id", follower_id)
            .eq("following_id", following_id)
            .execute()
        )

    async def counts(self, user_id: str) -> tuple[int, int]:
        """Return ``(followers, following)`` for *user_id*."""
        followers = (
            self._db.table("follows")
            .select("*", count="exact", head=True)
            .eq("following_id", user_id)
            .execute()
        )
        following = (
            self._db.table("follows")
            .select("*", count="exact", head=True)
            .eq("follower_id", user_id)
            .execute()
        )
        return followers.count or 0, following.count or 0

    async def list_followers(self, user_id: str, page: int, page_size: int) -> FollowPage:
        return await self._edge_page(
            match_column="following_id",
            other_column="follower_id",
            user_id=user_id,
            page=page,
            page_size=page_size,
        )

    async def list_following(self, user_id: str, page: int, page_size: int) -> FollowPage:
        return await self._edge_page(
            match_column="follower_id",
            other_column="following_id",
            user_id=user_id,
            page=page,
            page_size=page_size,
        )

    async def following_ids(self, user_id: str) -> list[str]:
        result = (
            self._db.table("follows")
            .select("following_id")
            .eq("follower_id", user_id)
            .execute()
        )
        return [row["following_id"] for row in (result.data or [])]

    async def _edge_page(
        self,
        *,
        match_column: str,
        other_column: str,
        user_id: str,
        page: int,
        page_size: int,
    ) -> FollowPage:
        start = page * page_size
        edges = (
            self._db.table("follows")
            .select(f"{other_column}, created_at")
            .eq(match_column, user_id)
            .order("created_at", desc=True)
            .range(start, start + page_size)
            .execute()
        )
        rows = edges.data or []
        visible = rows[:page_size]

        profiles = await self.profile_summaries(row[other_column] for row in visible)

        items = []
        for row in visible:
            other_id = row[other_column]
            profile = profiles.get(other_id)
            items.append(FollowEdge(
                id=other_id,
                username=profile.username if profile else None,
                avatar_url=profile.avatar_url if profile else None,
                since=row.get("created_at"),
            ))

        return FollowPage(items=items, page=page, has_more=len(rows) > page_size)

    async def profile_summaries(self, user_ids: Iterable[str]) -> dict[str, ProfileSummary]:
        """Resolve ids to profile summaries. Unknown ids are left out."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        result = (
            self._db.table("profiles")
            .select(_SUMMARY_COLUMNS)
            .in_("id", ids)
            .execute()
        )
        return {row["id"]: ProfileSummary(**row) for row in (result.data or [])}

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    async def like_states(
        self, post_ids: list[str], viewer_id: str | None
    ) -> dict[str, LikeState]:
        """Like count and whether *viewer_id* liked it, for each post."""
        states = {pid: LikeState(post_id=pid, liked=False, like_count=0) for pid in post_ids}
        if not post_ids:
            return states

        result = (
            self._db.table("post_likes")
            .select("post_id, user_id")
            .in_("post_id", post_ids)
            .execute()
        )
        for row in result.data or []:
            state = states.get(row["post_id"])
            if state is None:
                continue
            state.like_count += 1
            if viewer_id is not None and row["user_id"] == viewer_id:
                state.liked = True
        return states

    async def like(self, post_id: str, user_id: str) -> LikeState:
        try:
            self._db.table("post_likes").insert(
                {"post_id": post_id, "user_id": user_id}
            ).execute()
        except APIError as exc:
            if exc.code != UNIQUE_VIOLATION:
                raise
        return (await self.like_states([post_id], user_id))[post_id]

    async def unlike(self, post_id: str, user_id: str) -> LikeState:
        (
            self._db.table("post_likes")
            .delete()
            .eq("post_id", post_id)
            .eq("user_id", user_id)
            .execute()
        )
        return (await self.like_states([post_id], user_id))[post_id]

    # ------------------------------------------------------------------
    # Post listings
    # ------------------------------------------------------------------

    async def posts_page(
        self, author_id: str, page: int, page_size: int, viewer_id: str | None
    ) -> PostPage:
        """One page of *author_id*'s posts, newest first."""
        start = page * page_size
        result = (
            self._db.table("posts")
            .select(_POST_COLUMNS)
            .eq("user_id", author_id)
            .order("created_at", desc=True)
            .range(start, start + page_size)
            .execute()
        )
        return await self._build_page(result.data or [], page, page_size, viewer_id)

    async def feed(self, user_id: str, page: int, page_size: int) -> PostPage:
        """Posts by everyone *user_id* follows, plus their own, newest first."""
        authors = [user_id] + await self.following_ids(user_id)
        start = page * page_size
        result = (
            self._db.table("posts")
            .select(_POST_COLUMNS)
            .in_("user_id", authors)
            .order("created_at", desc=True)
            .range(start, start + page_size)
            .execute()
        )
        post_page = await self._build_page(result.data or [], page, page_size, user_id)

        profiles = await self.profile_summaries(p.user_id for p in post_page.items)
        for post in post_page.items:
            post.author = profiles.get(post.user_id)
        return post_page

    async def _build_page(
        self, rows: list[dict], page: int, page_size: int, viewer_id: str | None
    ) -> PostPage:
        visible = rows[:page_size]
        states = await self.like_states([row["id"] for row in visible], viewer_id)
        items = [
            PostWithLikes(
                **row,
                like_count=states[row["id"]].like_count,
                liked_by_me=states[row["id"]].liked,
            )
            for row in visible
        ]
        return PostPage(items=items, page=page, has_more=len(rows) > page_size)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_service: SocialService | None = None


def get_social_service() -> SocialService:
    global _default_service
    if _default_service is None:
        _default_service = SocialService()
    return _default_service
