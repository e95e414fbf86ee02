"""Pydantic validation models for all data entering the coaching core."""

from __future__ import annotations

import datetime as dt
import math
import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EquipmentMode = Literal["full_gym", "limited", "bodyweight"]
IntensityPreference = Literal["downshift", "maintain", "push"]

MIN_SESSION_MINUTES = 10
MAX_SESSION_MINUTES = 120
DEFAULT_SESSION_MINUTES = 45

_LEADING_INT = re.compile(r"\d+")


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


class PerformedSet(BaseModel):
    """One logged set. ``weight_kg`` is accepted for rows written by older clients."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    reps: int = Field(ge=0)
    load_kg: float = Field(default=0.0, ge=0.0, allow_inf_nan=False, validation_alias="weight_kg")
    rir: Optional[int] = Field(default=None, ge=0, le=10)
    rpe: Optional[float] = Field(default=None, ge=1, le=10, allow_inf_nan=False)

    @field_validator("reps", mode="before")
    @classmethod
    def parse_reps(cls, v):
        # Free-text logging forms store reps like "8" or "8 reps".
        if isinstance(v, str):
            match = _LEADING_INT.search(v)
            if not match:
                raise ValueError("reps must contain a number")
            return int(match.group(0))
        if isinstance(v, float):
            _require_finite(v)
            if not v.is_integer():
                raise ValueError("reps must be a whole number")
            return int(v)
        return v


class ExercisePerformance(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=140)
    sets: list[PerformedSet] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def expand_flat_row(cls, data):
        # Quick-log rows carry a single reps/weight pair instead of a set list.
        if isinstance(data, dict) and not data.get("sets") and "reps" in data:
            data = dict(data)
            data["sets"] = [{"reps": data.pop("reps"), "weight_kg": data.pop("weight", None) or 0}]
        return data

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("exercise name must not be blank")
        return v


class WorkoutLogEntry(BaseModel):
    """One completed session, immutable once logged."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    exercises: list[ExercisePerformance] = Field(default_factory=list)


class ExercisePrescription(BaseModel):
    """Planner exercise shape; adapted exercises keep the same shape."""

    name: str = Field(min_length=1, max_length=140)
    sets: int = 1
    reps: str = "8-12"
    intensity: str = ""
    notes: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("sets", mode="before")
    @classmethod
    def sets_whole_number(cls, v):
        if isinstance(v, float):
            return round(_require_finite(v))
        return v

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("exercise name must not be blank")
        return v


AdaptedExercise = ExercisePrescription


class SessionConstraints(BaseModel):
    minutes_available: int = DEFAULT_SESSION_MINUTES
    equipment_mode: EquipmentMode = "full_gym"
    avoid_body_regions: list[str] = Field(default_factory=list)
    pain_flags: list[str] = Field(default_factory=list)
    intensity_preference: IntensityPreference = "maintain"

    @field_validator("minutes_available", mode="before")
    @classmethod
    def clamp_minutes(cls, v):
        if v is None:
            return DEFAULT_SESSION_MINUTES
        if isinstance(v, str):
            try:
                v = float(v.strip())
            except ValueError:
                raise ValueError("minutes_available must be a number") from None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            _require_finite(float(v))
            return int(max(MIN_SESSION_MINUTES, min(MAX_SESSION_MINUTES, round(v))))
        return v

    @field_validator("avoid_body_regions", "pain_flags", mode="before")
    @classmethod
    def drop_blank_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return [tag.strip() for tag in v if isinstance(tag, str) and tag.strip()]
        return v


class AdaptSessionInput(SessionConstraints):
    current_exercises: list[ExercisePrescription] = Field(min_length=1)


class SwapRequest(BaseModel):
    current_exercise: str = Field(min_length=1, max_length=140)
    reason: str = ""
    location: Optional[Literal["gym", "home"]] = None
    sets: Optional[float] = Field(default=None, allow_inf_nan=False)
    reps: Optional[str] = None
    intensity: Optional[str] = None

    @field_validator("current_exercise")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("current_exercise is required")
        return v
