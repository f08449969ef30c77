"""
Stats Router
============
GET /api/v1/stats — Aggregate statistics for the signed-in user.

Fetches every workout the user has logged, newest first, and hands them to
the statistics service. Aggregation happens here rather than in SQL so the
same rules (lenient duration parsing, exercise grouping) apply to legacy
rows written by the web client.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.auth import get_authenticated_user
from app.config import get_settings
from app.db.supabase import get_supabase_client
from app.models.stats import StatsRange, StatsResponse
from app.models.workout import Workout
from app.services.stats import aggregate, filter_by_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/stats", tags=["stats"])


def _resolve_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": f"Unknown timezone: '{name}'", "code": "invalid_timezone"},
        ) from exc


@router.get(
    "",
    response_model=StatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Get workout statistics",
    description=(
        "Totals per type, running distance/time/pace and zones, strength volume "
        "and top exercises, monthly and weekly buckets, and the most recent "
        "workouts for the chosen range. All sections are empty for new users."
    ),
    responses={
        200: {"description": "Statistics returned"},
        401: {"description": "Authentication required"},
        422: {"description": "Unknown range or timezone"},
    },
)
async def get_stats(
    range: Optional[StatsRange] = Query(default=None, description="7d, 30d, 90d or all"),
    tz: Optional[str] = Query(default=None, description="IANA timezone for month/week buckets"),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> StatsResponse:
    """Aggregate the caller's workouts over the requested range."""
    user = get_authenticated_user(authorization)
    settings = get_settings()

    stats_range = range or StatsRange(settings.stats_default_range)
    zone = _resolve_timezone(tz)

    db = get_supabase_client()
    result = (
        db.table("workouts")
        .select("*")
        .eq("user_id", user["id"])
        .order("created_at", desc=True)
        .execute()
    )
    workouts = Workout.from_rows(result.data or [])

    now = datetime.now(timezone.utc)
    summary = aggregate(
        workouts,
        stats_range,
        now=now,
        tz=zone,
        top_n=settings.stats_top_exercises,
        normalise_names=settings.normalise_exercise_names,
    )
    recent = filter_by_range(workouts, stats_range, now)[: settings.stats_recent_workouts]

    logger.debug(
        "Stats for user %s: %d of %d workouts in range %s",
        user["id"], summary.totals.count, len(workouts), stats_range.value,
    )

    return StatsResponse(**summary.model_dump(), recent=recent)
