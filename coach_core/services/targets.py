"""Next-session prescriptions derived from progression snapshots."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from coach_core.services.progression import ProgressionSnapshot, normalize_exercise_name

WORKING_LOAD_FRACTION = 0.72
LOAD_INCREMENT_KG = 2.5
PROGRESSING_TREND = 0.03
REGRESSING_TREND = -0.03


@dataclass(frozen=True)
class ProgressionTarget:
    exercise_name: str
    target_load_kg: Optional[float]
    target_rir: int
    progression_note: str
    e1rm: Optional[float]
    trend_score: float
    sample_size: int

    def to_dict(self) -> dict:
        return {
            "exercise_name": self.exercise_name,
            "target_load_kg": self.target_load_kg,
            "target_rir": self.target_rir,
            "progression_note": self.progression_note,
            "e1rm": self.e1rm,
            "trend_score": self.trend_score,
            "sample_size": self.sample_size,
        }


def round_to_increment(value: float, increment: float = LOAD_INCREMENT_KG) -> float:
    """Round half-up to the nearest plate increment; 0 for non-positive input."""
    if not math.isfinite(value) or value <= 0:
        return 0.0
    return math.floor(value / increment + 0.5) * increment


def pick_target(snapshot: ProgressionSnapshot) -> ProgressionTarget:
    """Translate one snapshot into load, reps-in-reserve and a short rationale.

    Trend at or above +0.03 earns a 3% bump at RIR 1; at or below -0.03 the
    load drops 4% at RIR 3; anything between holds load at RIR 2.
    """
    e1rm = snapshot.e1rm or 0.0
    base_load = e1rm * WORKING_LOAD_FRACTION if e1rm > 0 else 0.0
    trend = snapshot.trend_score

    multiplier = 1.0
    target_rir = 2
    note = "Maintain load and focus on clean reps."
    if trend >= PROGRESSING_TREND:
        multiplier = 1.03
        target_rir = 1
        note = "Progressing well. Add a small load increase."
    elif trend <= REGRESSING_TREND:
        multiplier = 0.96
        target_rir = 3
        note = "Recent regression detected. Reduce load slightly and own technique."

    target_load = round_to_increment(base_load * multiplier) if base_load > 0 else None

    return ProgressionTarget(
        exercise_name=snapshot.exercise_name,
        target_load_kg=target_load,
        target_rir=target_rir,
        progression_note=note,
        e1rm=snapshot.e1rm,
        trend_score=snapshot.trend_score,
        sample_size=snapshot.sample_size,
    )


def select_targets(
    snapshots: Iterable[ProgressionSnapshot],
    exercise_names: Optional[list[str]] = None,
    limit: int = 100,
) -> list[ProgressionTarget]:
    """Targets for the requested exercises (all when none requested), in snapshot order."""
    wanted = {normalize_exercise_name(n) for n in exercise_names or [] if n.strip()}
    targets: list[ProgressionTarget] = []
    for snapshot in snapshots:
        if wanted and snapshot.exercise_name not in wanted:
            continue
        targets.append(pick_target(snapshot))
        if len(targets) >= limit:
            break
    return targets
