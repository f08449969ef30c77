"""
Statistics Schemas
==================
Output of the workout statistics aggregator and the stats endpoint.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.models.workout import Workout


class StatsRange(str, Enum):
    """Lookback window for the stats page."""

    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    ALL = "all"

    @property
    def days(self) -> Optional[int]:
        """Window length in days, or ``None`` for unbounded."""
        return {"7d": 7, "30d": 30, "90d": 90}.get(self.value)


class Totals(BaseModel):
    count: int = 0
    by_type: dict[str, int] = Field(
        default_factory=lambda: {"running": 0, "strength": 0, "other": 0}
    )
    first_date: Optional[datetime] = None
    last_date: Optional[datetime] = None


class RunningStats(BaseModel):
    sessions: int = 0
    total_distance_km: float = 0.0
    total_duration_sec: int = 0
    avg_distance_km: float = 0.0
    # None when no distance was logged: pace is undefined, not zero.
    avg_pace_sec_per_km: Optional[float] = None
    zones: dict[int, int] = Field(default_factory=dict)
    total_duration_display: str = "0:00"
    avg_pace_display: str = "-"


class ExerciseVolume(BaseModel):
    name: str
    volume: float = 0.0
    sets: int = 0
    reps: int = 0


class StrengthStats(BaseModel):
    sessions: int = 0
    total_sets: int = 0
    total_reps: int = 0
    total_volume: float = 0.0
    top_exercises: list[ExerciseVolume] = Field(default_factory=list)


class PeriodBucket(BaseModel):
    """Per-month or per-week summary row."""

    count: int = 0
    distance_km: float = 0.0
    duration_sec: int = 0
    volume: float = 0.0


class AggregateResult(BaseModel):
    """Everything the stats page shows for one range."""

    range: StatsRange
    totals: Totals = Field(default_factory=Totals)
    running: RunningStats = Field(default_factory=RunningStats)
    strength: StrengthStats = Field(default_factory=StrengthStats)
    # Keys "YYYY-MM", newest first
    monthly: dict[str, PeriodBucket] = Field(default_factory=dict)
    # Keys ISO week "YYYY-Www", newest first
    weekly: dict[str, PeriodBucket] = Field(default_factory=dict)


class StatsResponse(AggregateResult):
    """Aggregate plus the most recent workouts in range."""

    recent: list[Workout] = Field(default_factory=list)
