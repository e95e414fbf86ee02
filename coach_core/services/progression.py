"""Progression snapshots: per-exercise strength summaries from raw workout logs.

For every canonical exercise name in the lookback window the engine derives:
- e1rm: best Epley estimate over eligible sets (1-12 reps, positive load)
- total_volume: sum of reps x load over all sets
- trend_score: least-squares slope of per-session best e1rm against elapsed
  weeks, divided by the mean of those bests (+0.03 ~ +3% per week)
- sample_size: distinct session dates containing the exercise

Snapshots are a derived cache: recomputing twice on identical input yields
identical output, and input ordering does not matter.

Reference: Epley (1985) one-rep max estimation.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from statistics import mean
from typing import Iterable, Optional

from coach_core.validators import WorkoutLogEntry

MIN_E1RM_REPS = 1
MAX_E1RM_REPS = 12
DAYS_PER_TREND_PERIOD = 7.0

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[\s.,;:!?]+$")


def normalize_exercise_name(name: str) -> str:
    """Canonical join key: case-folded, trimmed, single-spaced, no trailing punctuation."""
    canonical = _WHITESPACE.sub(" ", name.casefold()).strip()
    return _TRAILING_PUNCTUATION.sub("", canonical)


def is_e1rm_eligible(reps: int, load_kg: float) -> bool:
    return MIN_E1RM_REPS <= reps <= MAX_E1RM_REPS and load_kg > 0


def epley(load_kg: float, reps: int) -> float:
    """Unrounded Epley estimate: load * (1 + reps / 30)."""
    if load_kg <= 0:
        return 0.0
    return load_kg * (1 + reps / 30)


def estimate_e1rm(load_kg: float, reps: int) -> float:
    return round(epley(load_kg, reps), 2)


@dataclass(frozen=True)
class ProgressionSnapshot:
    """Performance summary for one canonical exercise."""
    exercise_name: str
    e1rm: Optional[float]
    total_volume: float
    trend_score: float
    last_performed_date: Optional[dt.date]
    sample_size: int

    def __post_init__(self) -> None:
        canonical = normalize_exercise_name(self.exercise_name)
        if not canonical:
            raise ValueError("exercise_name must not be blank")
        if canonical != self.exercise_name:
            object.__setattr__(self, "exercise_name", canonical)
        if self.sample_size < 0:
            raise ValueError("sample_size must be >= 0")
        if self.sample_size == 0 and (self.e1rm is not None or self.trend_score != 0):
            raise ValueError("a snapshot without samples cannot carry an e1rm or trend")
        if self.e1rm is not None and self.e1rm <= 0:
            raise ValueError("e1rm must be positive when present")

    def to_dict(self) -> dict:
        return {
            "exercise_name": self.exercise_name,
            "e1rm": self.e1rm,
            "total_volume": self.total_volume,
            "trend_score": self.trend_score,
            "last_performed_date": self.last_performed_date.isoformat() if self.last_performed_date else None,
            "sample_size": self.sample_size,
        }


@dataclass
class _ExerciseHistory:
    volume: float = 0.0
    # session date -> best eligible e1rm that day
    best_by_date: dict[dt.date, float] = field(default_factory=dict)
    dates: set[dt.date] = field(default_factory=set)


def compute_trend_score(session_bests: list[tuple[dt.date, float]]) -> float:
    """Least-squares slope of best e1rm per week, normalized by mean e1rm.

    Fewer than two sessions give a flat trend of 0.
    """
    if len(session_bests) < 2:
        return 0.0
    ordered = sorted(session_bests)
    first = ordered[0][0]
    xs = [(d - first).days / DAYS_PER_TREND_PERIOD for d, _ in ordered]
    ys = [v for _, v in ordered]
    x_mean = mean(xs)
    y_mean = mean(ys)
    sxx = sum((x - x_mean) ** 2 for x in xs)
    if sxx == 0 or y_mean <= 0:
        return 0.0
    slope = sum((x - x_mean) * (y - y_mean) for x, y in zip(xs, ys)) / sxx
    return round(slope / y_mean, 4)


def compute_progression_snapshots(workouts: Iterable[WorkoutLogEntry]) -> list[ProgressionSnapshot]:
    """Build one snapshot per canonical exercise with eligible history.

    Exercises whose sets never qualify for an e1rm estimate produce no
    snapshot at all. Output is sorted by canonical name.
    """
    history: dict[str, _ExerciseHistory] = {}

    for workout in workouts:
        for exercise in workout.exercises:
            key = normalize_exercise_name(exercise.name)
            if not key:
                continue
            entry = history.setdefault(key, _ExerciseHistory())
            entry.dates.add(workout.date)
            for performed in exercise.sets:
                entry.volume += performed.reps * performed.load_kg
                if not is_e1rm_eligible(performed.reps, performed.load_kg):
                    continue
                e1rm = epley(performed.load_kg, performed.reps)
                previous = entry.best_by_date.get(workout.date, 0.0)
                entry.best_by_date[workout.date] = max(previous, e1rm)

    snapshots: list[ProgressionSnapshot] = []
    for name in sorted(history):
        entry = history[name]
        if not entry.best_by_date:
            continue
        # sub-gram loads round to 0 and carry no usable estimate
        best = round(max(entry.best_by_date.values()), 2)
        if best <= 0:
            continue
        snapshots.append(ProgressionSnapshot(
            exercise_name=name,
            e1rm=best,
            total_volume=round(entry.volume, 2),
            trend_score=compute_trend_score(list(entry.best_by_date.items())),
            last_performed_date=max(entry.dates),
            sample_size=len(entry.dates),
        ))
    return snapshots


def most_recent_sessions(workouts: Iterable[WorkoutLogEntry], limit: int) -> list[WorkoutLogEntry]:
    """Newest ``limit`` sessions by date; the store may hand them over in any order."""
    ordered = sorted(workouts, key=lambda w: w.date, reverse=True)
    return ordered[:max(0, limit)]
