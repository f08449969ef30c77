"""
Workout Statistics
==================
Turns a user's workouts into the numbers on the stats page: totals per
type, running distance/time/pace and zone spread, strength volume and top
exercises, and per-month / per-week buckets.

Everything here is a pure function of its arguments. Nothing reads the
database or the clock unless ``now`` is omitted, and inputs are never
mutated, so results can be recomputed freely.

Malformed values never raise. An unparseable duration counts as 0 seconds
and a missing distance as 0 km; the stats page degrades instead of failing.
Data-entry validation belongs to ``POST /api/v1/workouts``.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Union

from app.models.stats import (
    AggregateResult,
    ExerciseVolume,
    PeriodBucket,
    RunningStats,
    StatsRange,
    StrengthStats,
    Totals,
)
from app.models.workout import Workout

DEFAULT_TOP_EXERCISES = 5


# ---------------------------------------------------------------------------
# Parsing and formatting
# ---------------------------------------------------------------------------

def parse_duration(text: Optional[str]) -> int:
    """Seconds in ``SS``, ``MM:SS`` or ``H:MM:SS``. Anything else is 0.

    An empty part is a missing unit and counts as 0, so ``":30"`` is 30.

    >>> parse_duration("1:30"), parse_duration("0:01:30"), parse_duration("abc")
    (90, 90, 0)
    """
    if not isinstance(text, str) or not text.strip():
        return 0

    parts = text.strip().split(":")
    if len(parts) > 3:
        return 0

    values: list[float] = []
    for part in parts:
        if not part.strip():
            values.append(0.0)
            continue
        try:
            value = float(part)
        except ValueError:
            return 0
        if not math.isfinite(value) or value < 0:
            return 0
        values.append(value)

    seconds = 0.0
    for value in values:
        seconds = seconds * 60 + value
    return int(seconds)


def format_duration(seconds: float) -> str:
    """``H:MM:SS`` when there are hours, otherwise ``M:SS``."""
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_pace(sec_per_km: Optional[float]) -> str:
    """``M:SS /km``, or ``-`` when pace is undefined."""
    if sec_per_km is None or not math.isfinite(sec_per_km) or sec_per_km <= 0:
        return "-"
    minutes, secs = divmod(round(sec_per_km), 60)
    return f"{minutes}:{secs:02d} /km"


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def week_key(moment: datetime) -> str:
    iso_year, iso_week, _ = moment.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

def filter_by_range(
    workouts: Iterable[Workout],
    time_range: Union[StatsRange, str],
    now: Optional[datetime] = None,
) -> list[Workout]:
    """Workouts with ``created_at >= now - window``.

    The unbounded range keeps everything, including rows with no timestamp.
    Bounded ranges drop rows with no timestamp.
    """
    days = StatsRange(time_range).days
    if days is None:
        return list(workouts)

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = now - timedelta(days=days)

    return [w for w in workouts if w.created_at is not None and w.created_at >= cutoff]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _add_to_bucket(
    buckets: dict[str, PeriodBucket],
    key: str,
    distance_km: float = 0.0,
    duration_sec: int = 0,
    volume: float = 0.0,
) -> None:
    bucket = buckets.setdefault(key, PeriodBucket())
    bucket.count += 1
    bucket.distance_km += distance_km
    bucket.duration_sec += duration_sec
    bucket.volume += volume


def _newest_first(buckets: dict[str, PeriodBucket]) -> dict[str, PeriodBucket]:
    # Zero-padded keys sort chronologically as strings
    return dict(sorted(buckets.items(), key=lambda item: item[0], reverse=True))


def aggregate(
    workouts: Iterable[Workout],
    time_range: Union[StatsRange, str] = StatsRange.ALL,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    top_n: int = DEFAULT_TOP_EXERCISES,
    normalise_names: bool = False,
) -> AggregateResult:
    """Summarise *workouts* over *time_range*.

    Args:
        workouts: The user's workouts, newest first or in any order.
        time_range: ``7d``, ``30d``, ``90d`` or ``all``, relative to *now*.
        now: Reference time for the range. Defaults to the current UTC time.
        tz: Timezone for month/week buckets. Defaults to each record's own offset.
        top_n: How many exercises to keep in ``strength.top_exercises``.
        normalise_names: Group exercises by trimmed, lower-cased name instead
            of the exact name.
    """
    stats_range = StatsRange(time_range)
    selected = filter_by_range(workouts, stats_range, now)

    totals = Totals(count=len(selected))
    running = RunningStats()
    strength = StrengthStats()
    monthly: dict[str, PeriodBucket] = {}
    weekly: dict[str, PeriodBucket] = {}
    zones: dict[int, int] = {}
    # Insertion order doubles as first-seen order for tie-breaking
    exercises: dict[str, ExerciseVolume] = {}

    timestamps = [w.created_at for w in selected if w.created_at is not None]
    if timestamps:
        totals.first_date = min(timestamps)
        totals.last_date = max(timestamps)

    for workout in selected:
        totals.by_type[workout.type] = totals.by_type.get(workout.type, 0) + 1

        distance_km = 0.0
        duration_sec = 0
        volume = 0.0

        if workout.type == "running":
            running.sessions += 1
            distance_km = workout.distance_km or 0.0
            duration_sec = parse_duration(workout.total_time)
            running.total_distance_km += distance_km
            running.total_duration_sec += duration_sec
            if workout.zone is not None:
                zones[workout.zone] = zones.get(workout.zone, 0) + 1

        elif workout.type == "strength":
            strength.sessions += 1
            for exercise in workout.exercises:
                reps = exercise.sets * exercise.reps
                strength.total_sets += exercise.sets
                strength.total_reps += reps
                strength.total_volume += exercise.volume
                volume += exercise.volume

                # Unnamed lines count in the totals but not in the ranking
                name = exercise.name.strip()
                if not name:
                    continue
                key = name.lower() if normalise_names else exercise.name

                entry = exercises.setdefault(
                    key, ExerciseVolume(name=name if normalise_names else exercise.name)
                )
                entry.volume += exercise.volume
                entry.sets += exercise.sets
                entry.reps += reps

        if workout.created_at is not None:
            local = workout.created_at.astimezone(tz) if tz else workout.created_at
            _add_to_bucket(monthly, month_key(local), distance_km, duration_sec, volume)
            _add_to_bucket(weekly, week_key(local), distance_km, duration_sec, volume)

    if running.sessions:
        running.avg_distance_km = running.total_distance_km / running.sessions
    if running.total_distance_km > 0:
        running.avg_pace_sec_per_km = running.total_duration_sec / running.total_distance_km
    running.zones = dict(sorted(zones.items()))
    running.total_duration_display = format_duration(running.total_duration_sec)
    running.avg_pace_display = format_pace(running.avg_pace_sec_per_km)

    ranked = sorted(exercises.values(), key=lambda e: e.volume, reverse=True)
    strength.top_exercises = ranked[: max(top_n, 0)]

    return AggregateResult(
        range=stats_range,
        totals=totals,
        running=running,
        strength=strength,
        monthly=_newest_first(monthly),
        weekly=_newest_first(weekly),
    )
