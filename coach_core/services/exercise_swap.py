"""Single-exercise swap: pick a replacement for one exercise the athlete can't do today."""

from __future__ import annotations

import math

from coach_core.services.movement_patterns import (
    EQUIPMENT_FALLBACK,
    EQUIPMENT_SWAPS,
    GENERIC_FALLBACK,
    PAIN_SWAPS,
    VARIANTS,
    first_match,
)
from coach_core.validators import ExercisePrescription, SwapRequest

DEFAULT_SETS = 3
DEFAULT_REPS = "8-12"
DEFAULT_INTENSITY = "RPE 6-7"

PAIN_REASONS = ("pain", "injury", "sore")
EQUIPMENT_REASONS = ("equipment", "home")

SWAP_RELIABILITY = {
    "confidence_score": 0.77,
    "explanation": "Rule-based substitution using movement pattern and user reason.",
    "limitations": [
        "No live pain signal is available; confirm pain-free range before loading.",
        "Adjust load downward if readiness is low today.",
    ],
}


def _target_sets(sets: float | None) -> int:
    if sets is None or not math.isfinite(sets):
        return DEFAULT_SETS
    return max(1, min(8, math.floor(sets + 0.5)))


def choose_replacement(request: SwapRequest) -> ExercisePrescription:
    name = request.current_exercise
    why = request.reason.lower()

    def build(replacement: str, note: str) -> ExercisePrescription:
        return ExercisePrescription(
            name=replacement,
            sets=_target_sets(request.sets),
            reps=(request.reps or "").strip() or DEFAULT_REPS,
            intensity=(request.intensity or "").strip() or DEFAULT_INTENSITY,
            notes=note,
        )

    if any(word in why for word in PAIN_REASONS):
        rule = first_match(PAIN_SWAPS, name)
        if rule:
            return build(rule.name, rule.note)

    if any(word in why for word in EQUIPMENT_REASONS) or request.location == "home":
        rule = first_match(EQUIPMENT_SWAPS, name) or EQUIPMENT_FALLBACK
        return build(rule.name, rule.note)

    variant = first_match(VARIANTS, name)
    if variant is None:
        return build(GENERIC_FALLBACK.name, GENERIC_FALLBACK.note)
    return build(variant.gym if request.location == "gym" else variant.home, variant.note)
