"""
Workout Schemas
===============
Pydantic models for logging and reading workouts.

Two families live here:

- ``WorkoutCreate`` / ``RunningBatchCreate`` are request payloads and are
  strict. Bad input is rejected at the entry boundary with a 422.
- ``Workout`` / ``StrengthExercise`` read rows back out of the ``workouts``
  table and are lenient. Rows written by older clients (Norwegian type
  labels, string numbers, missing timestamps) load without raising, so
  the statistics page never fails on one bad row.

Column names in the table are kept as the web client created them
(``distance``, ``strength_exercises``, ``exercise``, ``weight``); the
models expose clearer names and accept both. The ``type`` column is written
with the web client's labels (``løping``, ``styrke``, ``annet``), which it
filters on, and read back as ``running``, ``strength``, ``other``.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

WorkoutType = Literal["running", "strength", "other"]

VALID_WORKOUT_TYPES: tuple[str, ...] = ("running", "strength", "other")

# Labels written by the first, Norwegian-language web client
LEGACY_TYPE_LABELS = {
    "løping": "running",
    "styrke": "strength",
    "annet": "other",
}

# New rows keep those labels so the web client still finds them
STORED_TYPE_LABELS = {current: legacy for legacy, current in LEGACY_TYPE_LABELS.items()}

# SS, MM:SS or H:MM:SS. Only the leading part may exceed 59.
TOTAL_TIME_PATTERN = r"^\d{1,3}(:[0-5]\d){0,2}$"

MIN_ZONE = 1
MAX_ZONE = 5


# ---------------------------------------------------------------------------
# Lenient coercion helpers (read side)
# ---------------------------------------------------------------------------

def _non_negative_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def _non_negative_int(value: Any) -> Optional[int]:
    number = _non_negative_float(value)
    return int(number) if number is not None else None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a PostgREST timestamp. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

class StrengthExercise(BaseModel):
    """One exercise line of a strength workout, as stored."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", validation_alias=AliasChoices("name", "exercise"))
    category: str = ""
    sets: int = 0
    reps: int = 0
    weight_kg: float = Field(default=0.0, validation_alias=AliasChoices("weight_kg", "weight"))
    rpe: Optional[int] = None

    @field_validator("name", "category", mode="before")
    @classmethod
    def _read_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("sets", "reps", mode="before")
    @classmethod
    def _read_count(cls, v: Any) -> int:
        return _non_negative_int(v) or 0

    @field_validator("weight_kg", mode="before")
    @classmethod
    def _read_weight(cls, v: Any) -> float:
        return _non_negative_float(v) or 0.0

    @field_validator("rpe", mode="before")
    @classmethod
    def _read_rpe(cls, v: Any) -> Optional[int]:
        return _non_negative_int(v)

    @property
    def volume(self) -> float:
        """sets × reps × weight."""
        return self.sets * self.reps * self.weight_kg


class Workout(BaseModel):
    """A workout row from the ``workouts`` table."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    user_id: Optional[str] = None
    title: str = ""
    type: WorkoutType = "other"
    created_at: Optional[datetime] = None

    # running
    distance_km: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("distance_km", "distance")
    )
    total_time: Optional[str] = None
    zone: Optional[int] = None

    # strength
    exercises: list[StrengthExercise] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exercises", "strength_exercises"),
    )

    # other
    description: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _read_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("title", mode="before")
    @classmethod
    def _read_title(cls, v: Any) -> str:
        return _text(v)

    @field_validator("type", mode="before")
    @classmethod
    def _read_type(cls, v: Any) -> str:
        if isinstance(v, str):
            label = v.strip().lower()
            label = LEGACY_TYPE_LABELS.get(label, label)
            if label in VALID_WORKOUT_TYPES:
                return label
        return "other"

    @field_validator("created_at", mode="before")
    @classmethod
    def _read_created_at(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("distance_km", mode="before")
    @classmethod
    def _read_distance(cls, v: Any) -> Optional[float]:
        return _non_negative_float(v)

    @field_validator("total_time", "description", mode="before")
    @classmethod
    def _read_optional_text(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None

    @field_validator("zone", mode="before")
    @classmethod
    def _read_zone(cls, v: Any) -> Optional[int]:
        zone = _non_negative_int(v)
        if zone is None or not MIN_ZONE <= zone <= MAX_ZONE:
            return None
        return zone

    @field_validator("exercises", mode="before")
    @classmethod
    def _read_exercises(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, (dict, StrengthExercise))]

    @classmethod
    def from_rows(cls, rows: Iterable[Any]) -> list[Workout]:
        """Load table rows, skipping any that cannot be read at all."""
        workouts: list[Workout] = []
        for row in rows:
            try:
                workouts.append(cls.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping unreadable workout row: %s", exc)
        return workouts


# ---------------------------------------------------------------------------
# Request models (write side)
# ---------------------------------------------------------------------------

class StrengthExerciseCreate(BaseModel):
    """One exercise line in a new strength workout."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(
        ..., min_length=1, max_length=100, validation_alias=AliasChoices("name", "exercise")
    )
    category: str = Field(default="", max_length=50)
    sets: int = Field(..., ge=1, le=100)
    reps: int = Field(..., ge=1, le=1000)
    weight_kg: float = Field(
        default=0.0, ge=0, le=1000, validation_alias=AliasChoices("weight_kg", "weight")
    )
    rpe: Optional[int] = Field(default=None, ge=0, le=10)

    def to_row(self) -> dict:
        return {
            "exercise": self.name.strip(),
            "category": self.category.strip(),
            "sets": self.sets,
            "reps": self.reps,
            "weight": self.weight_kg,
            "rpe": self.rpe,
        }


def _drop_blank_exercises(v: Any) -> Any:
    """The web form always submits one empty line; ignore unnamed rows."""
    if not isinstance(v, list):
        return v
    kept = []
    for item in v:
        if isinstance(item, dict):
            name = item.get("name", item.get("exercise"))
            if not isinstance(name, str) or not name.strip():
                continue
        kept.append(item)
    return kept


class WorkoutCreate(BaseModel):
    """Payload the client sends when logging a single workout."""

    title: str = Field(..., max_length=120)
    type: WorkoutType
    distance_km: Optional[float] = Field(default=None, gt=0, le=1000)
    total_time: Optional[str] = Field(default=None, pattern=TOTAL_TIME_PATTERN)
    zone: Optional[int] = Field(default=None, ge=MIN_ZONE, le=MAX_ZONE)
    exercises: list[StrengthExerciseCreate] = Field(default_factory=list)
    description: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("exercises", mode="before")
    @classmethod
    def _drop_blank(cls, v: Any) -> Any:
        return _drop_blank_exercises(v)

    def to_row(self, user_id: str) -> dict:
        """Only the columns that belong to this workout type are written."""
        row: dict[str, Any] = {
            "user_id": user_id,
            "title": self.title,
            "type": STORED_TYPE_LABELS[self.type],
        }
        if self.type == "running":
            row.update(distance=self.distance_km, total_time=self.total_time, zone=self.zone)
        elif self.type == "strength":
            row["strength_exercises"] = [ex.to_row() for ex in self.exercises]
        else:
            row["description"] = self.description
        return row


class RunningSessionCreate(BaseModel):
    """One run in a batch. Incomplete runs are dropped, not rejected."""

    distance_km: float = Field(default=0.0, ge=0, le=1000)
    total_time: str = Field(default="", max_length=12)
    zone: int = Field(default=0, ge=0, le=MAX_ZONE)

    @property
    def is_complete(self) -> bool:
        return self.distance_km > 0 and self.total_time.strip() != "" and self.zone > 0


class RunningBatchCreate(BaseModel):
    """Several runs logged at once under one title."""

    title: str = Field(..., max_length=120)
    sessions: list[RunningSessionCreate] = Field(..., max_length=50)

    @field_validator("title", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class WorkoutSummary(BaseModel):
    """Dashboard counts for the signed-in user."""

    total: int
    last_7_days: int
    by_type: dict[str, int]
