"""
Workouts Router
===============
POST   /api/v1/workouts                — Log a workout.
POST   /api/v1/workouts/running-batch  — Log several runs under one title.
GET    /api/v1/workouts                — List own workouts, newest first.
GET    /api/v1/workouts/summary        — Dashboard counts.
DELETE /api/v1/workouts/{workout_id}   — Delete an own workout.

Type-specific fields are checked here, at the entry boundary, so the
statistics page can trust what it reads. A run needs distance, time and
zone; a strength session needs at least one named exercise; anything else
needs a description.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.auth import get_authenticated_user
from app.db.supabase import get_supabase_client
from app.models.workout import (
    TOTAL_TIME_PATTERN,
    VALID_WORKOUT_TYPES,
    LEGACY_TYPE_LABELS,
    STORED_TYPE_LABELS,
    RunningBatchCreate,
    Workout,
    WorkoutCreate,
    WorkoutSummary,
    WorkoutType,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/workouts", tags=["workouts"])

_TOTAL_TIME_RE = re.compile(TOTAL_TIME_PATTERN)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _unprocessable(message: str, code: str) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": message, "code": code},
    )


def _validate_workout_fields(body: WorkoutCreate) -> None:
    """Check the fields that the workout type makes mandatory.

    Raises HTTPException 422 with a specific code.
    """
    if not body.title:
        raise _unprocessable("Title must not be blank", "missing_title")

    if body.type == "running":
        if body.distance_km is None or not body.total_time or body.zone is None:
            raise _unprocessable(
                "A run needs distance_km, total_time and zone", "missing_running_fields"
            )
    elif body.type == "strength":
        if not body.exercises:
            raise _unprocessable(
                "A strength workout needs at least one named exercise", "no_exercises"
            )
    elif not body.description:
        raise _unprocessable("Describe the workout", "missing_description")


def _type_labels(workout_type: str) -> list[str]:
    """The stored labels for a type, including the Norwegian ones."""
    return [workout_type] + [
        legacy for legacy, current in LEGACY_TYPE_LABELS.items() if current == workout_type
    ]


def _count(db, user_id: str, *, labels: Optional[list[str]] = None, since: Optional[str] = None) -> int:
    query = db.table("workouts").select("id", count="exact").eq("user_id", user_id)
    if labels is not None:
        query = query.in_("type", labels)
    if since is not None:
        query = query.gte("created_at", since)
    return query.execute().count or 0


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=Workout,
    status_code=status.HTTP_201_CREATED,
    summary="Log a workout",
    responses={
        201: {"description": "Workout created"},
        401: {"description": "Authentication required"},
        422: {"description": "Missing or invalid fields for the workout type"},
    },
)
async def create_workout(
    body: WorkoutCreate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> Workout:
    """Log a single running, strength or other workout."""
    user = get_authenticated_user(authorization)
    user_id: str = user["id"]

    _validate_workout_fields(body)

    db = get_supabase_client()
    result = db.table("workouts").insert(body.to_row(user_id)).execute()

    if not result.data:
        logger.error("Failed to insert workout for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save workout", "code": "db_error"},
        )

    logger.info("User %s logged a %s workout", user_id, body.type)
    return Workout.model_validate(result.data[0])


@router.post(
    "/running-batch",
    response_model=list[Workout],
    status_code=status.HTTP_201_CREATED,
    summary="Log several runs at once",
    description=(
        "Each complete session (distance > 0, time and zone set) becomes its own "
        "workout row sharing the title. Incomplete sessions are dropped."
    ),
)
async def create_running_batch(
    body: RunningBatchCreate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[Workout]:
    user = get_authenticated_user(authorization)
    user_id: str = user["id"]

    if not body.title:
        raise _unprocessable("Title must not be blank", "missing_title")

    sessions = [s for s in body.sessions if s.is_complete]
    if not sessions:
        raise _unprocessable("No complete running sessions to save", "no_sessions")

    for session in sessions:
        if not _TOTAL_TIME_RE.match(session.total_time.strip()):
            raise _unprocessable(
                f"Invalid total_time: '{session.total_time}'", "invalid_total_time"
            )

    rows = [
        {
            "user_id": user_id,
            "title": body.title,
            "type": STORED_TYPE_LABELS["running"],
            "distance": s.distance_km,
            "total_time": s.total_time.strip(),
            "zone": s.zone,
        }
        for s in sessions
    ]

    db = get_supabase_client()
    result = db.table("workouts").insert(rows).execute()

    if not result.data:
        logger.error("Failed to insert %d runs for user %s", len(rows), user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save workouts", "code": "db_error"},
        )

    return Workout.from_rows(result.data)


@router.get(
    "",
    response_model=list[Workout],
    summary="List own workouts",
)
async def list_workouts(
    type: Optional[WorkoutType] = Query(default=None, description="Only this workout type"),
    limit: int = Query(default=50, ge=1, le=500),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[Workout]:
    user = get_authenticated_user(authorization)

    db = get_supabase_client()
    query = db.table("workouts").select("*").eq("user_id", user["id"])
    if type is not None:
        query = query.in_("type", _type_labels(type))
    result = query.order("created_at", desc=True).limit(limit).execute()

    return Workout.from_rows(result.data or [])


@router.get(
    "/summary",
    response_model=WorkoutSummary,
    summary="Dashboard workout counts",
    description="Total workouts, workouts in the last 7 days, and totals per type.",
)
async def get_workout_summary(
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> WorkoutSummary:
    user = get_authenticated_user(authorization)
    user_id: str = user["id"]

    db = get_supabase_client()
    seven_days_ago = (datetime.now(timezone.utc) - timedelta(days=7)).isoformat()

    return WorkoutSummary(
        total=_count(db, user_id),
        last_7_days=_count(db, user_id, since=seven_days_ago),
        by_type={t: _count(db, user_id, labels=_type_labels(t)) for t in VALID_WORKOUT_TYPES},
    )


@router.delete(
    "/{workout_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an own workout",
    responses={404: {"description": "No such workout for this user"}},
)
async def delete_workout(
    workout_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> None:
    user = get_authenticated_user(authorization)

    db = get_supabase_client()
    result = (
        db.table("workouts")
        .delete()
        .eq("id", workout_id)
        .eq("user_id", user["id"])
        .execute()
    )

    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Workout not found", "code": "not_found"},
        )

    logger.info("User %s deleted workout %s", user["id"], workout_id)
