"""Real-time session adaptation: rewrite a planned exercise list under today's constraints.

Per exercise, in order:
1. exclude when an avoided body region's movement pattern or a pain flag matches
2. swap excluded exercises for a safe alternative from the same movement family
3. rescale sets by intensity preference (downshift 0.8, push 1.1), clamp to 1-8
4. trim trailing exercises when the estimated minutes exceed the time budget

Pure and total over validated input; the caller rejects empty lists first.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import Any

from coach_core.services.movement_patterns import excluding_rules, matches_pain_flag, safe_replacement
from coach_core.validators import AdaptedExercise, ExercisePrescription, SessionConstraints

MIN_SETS = 1
MAX_SETS = 8
MIN_MINUTES_PER_EXERCISE = 4
MINUTES_PER_SET = 2

SET_MULTIPLIERS: dict[str, float] = {
    "downshift": 0.8,
    "maintain": 1.0,
    "push": 1.1,
}

SUBSTITUTION_NOTE = "Adapted for safety constraints and session continuity."
DOWNSHIFT_NOTE = "Downshifted for recovery constraints."
PUSH_NOTE = "Slight progression push requested."

RATIONALE_TRIMMED = "Session shortened to fit available time while preserving core stimulus."
RATIONALE_ADAPTED = "Session adapted using constraints for equipment, body-region avoidance, and intensity preference."

RELIABILITY: dict[str, Any] = {
    "confidence_score": 0.79,
    "explanation": "Rule-based adaptation with deterministic safety substitutions.",
    "limitations": [
        "No live pain telemetry is available; stop if symptoms worsen.",
        "Load prescriptions still require user judgement and warm-up feedback.",
    ],
}


@dataclass(frozen=True)
class AdaptationResult:
    exercises: list[AdaptedExercise]
    rationale: str
    trimmed: bool = False
    substitutions: int = 0
    reliability: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(RELIABILITY))

    def to_dict(self) -> dict[str, Any]:
        return {
            "exercises": [ex.model_dump() for ex in self.exercises],
            "rationale": self.rationale,
            "reliability": copy.deepcopy(self.reliability),
        }


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rescale_sets(sets: int, intensity_preference: str) -> int:
    base = _clamp(sets or 1, MIN_SETS, MAX_SETS)
    return int(_clamp(_round_half_up(base * SET_MULTIPLIERS[intensity_preference]), MIN_SETS, MAX_SETS))


def estimate_minutes(exercises: list[ExercisePrescription]) -> int:
    return sum(max(MIN_MINUTES_PER_EXERCISE, ex.sets * MINUTES_PER_SET) for ex in exercises)


def is_excluded(exercise: ExercisePrescription, constraints: SessionConstraints) -> bool:
    if excluding_rules(exercise.name, constraints.avoid_body_regions):
        return True
    return matches_pain_flag(exercise.name, constraints.pain_flags) is not None


def adapt_exercise(exercise: ExercisePrescription, constraints: SessionConstraints) -> tuple[AdaptedExercise, bool]:
    """Return the adapted exercise and whether it was substituted."""
    preference = constraints.intensity_preference
    sets = rescale_sets(exercise.sets, preference)

    if is_excluded(exercise, constraints):
        return exercise.model_copy(update={
            "name": safe_replacement(exercise.name, constraints.equipment_mode),
            "sets": sets,
            "intensity": "RPE 5-6" if preference == "downshift" else exercise.intensity,
            "notes": SUBSTITUTION_NOTE,
        }), True

    update: dict[str, Any] = {"sets": sets}
    if preference == "downshift":
        update.update(intensity="RPE 6", notes=DOWNSHIFT_NOTE)
    elif preference == "push":
        update.update(intensity="RPE 8", notes=PUSH_NOTE)
    return exercise.model_copy(update=update), False


def trim_to_time_budget(exercises: list[AdaptedExercise], minutes_available: int) -> list[AdaptedExercise]:
    """Keep a prefix sized to the budget share of the estimate; never fewer than one."""
    estimated = estimate_minutes(exercises)
    if estimated <= minutes_available:
        return list(exercises)
    keep = max(1, math.floor((minutes_available / estimated) * len(exercises)))
    return list(exercises[:keep])


def adapt_session(
    current_exercises: list[ExercisePrescription],
    constraints: SessionConstraints | None = None,
) -> AdaptationResult:
    if not current_exercises:
        raise ValueError("current_exercises is required")
    constraints = constraints or SessionConstraints()

    adapted: list[AdaptedExercise] = []
    substitutions = 0
    for exercise in current_exercises:
        result, substituted = adapt_exercise(exercise, constraints)
        adapted.append(result)
        substitutions += int(substituted)

    kept = trim_to_time_budget(adapted, constraints.minutes_available)
    trimmed = len(kept) < len(adapted)
    return AdaptationResult(
        exercises=kept,
        rationale=RATIONALE_TRIMMED if trimmed else RATIONALE_ADAPTED,
        trimmed=trimmed,
        substitutions=substitutions,
    )
