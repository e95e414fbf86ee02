"""Tests for progression snapshot computation."""

from __future__ import annotations

from datetime import date

import pytest

from coach_core.services.progression import (
    ProgressionSnapshot,
    compute_progression_snapshots,
    compute_trend_score,
    estimate_e1rm,
    is_e1rm_eligible,
    most_recent_sessions,
    normalize_exercise_name,
)
from coach_core.validators import WorkoutLogEntry


def _log(day: str, name: str, sets: list[tuple[int, float]]) -> WorkoutLogEntry:
    return WorkoutLogEntry.model_validate({
        "date": day,
        "exercises": [{"name": name, "sets": [{"reps": r, "load_kg": w} for r, w in sets]}],
    })


# --- normalize_exercise_name ---

def test_normalize_variants_share_a_key():
    assert normalize_exercise_name("Back Squat") == normalize_exercise_name("back squat ")
    assert normalize_exercise_name("BACK SQUAT") == "back squat"


def test_normalize_collapses_whitespace_and_trailing_punctuation():
    assert normalize_exercise_name("  Romanian   Deadlift.  ") == "romanian deadlift"
    assert normalize_exercise_name("Pull-up!?") == "pull-up"


@pytest.mark.parametrize("raw", ["Back Squat", "  bench\tpress ,", "Step-Up.", "", "OHP!!", "a  b  c ;"])
def test_normalize_is_idempotent(raw):
    once = normalize_exercise_name(raw)
    assert normalize_exercise_name(once) == once


# --- estimate_e1rm ---

def test_estimate_e1rm_epley():
    assert estimate_e1rm(100, 5) == 116.67
    assert estimate_e1rm(80, 8) == 101.33


def test_estimate_e1rm_zero_load():
    assert estimate_e1rm(0, 5) == 0.0


def test_eligibility_window():
    assert is_e1rm_eligible(1, 100) is True
    assert is_e1rm_eligible(12, 60) is True
    assert is_e1rm_eligible(13, 60) is False
    assert is_e1rm_eligible(0, 60) is False
    assert is_e1rm_eligible(5, 0) is False


# --- compute_progression_snapshots ---

def test_aggregates_workout_logs_into_snapshot():
    snapshots = compute_progression_snapshots([
        _log("2026-02-20", "Back Squat", [(5, 100), (5, 102.5)]),
        _log("2026-02-27", "Back Squat", [(5, 105), (5, 107.5)]),
    ])

    assert len(snapshots) == 1
    snap = snapshots[0]
    assert snap.exercise_name == "back squat"
    assert snap.sample_size == 2
    assert snap.total_volume == 2075.0
    assert snap.e1rm == 125.42
    assert snap.trend_score == pytest.approx(0.0476, abs=1e-4)
    assert snap.last_performed_date == date(2026, 2, 27)


def test_ignores_sparse_entries_without_reps():
    snapshots = compute_progression_snapshots([_log("2026-02-28", "Bench Press", [(0, 80)])])
    assert snapshots == []


def test_sub_gram_load_produces_no_snapshot():
    snapshots = compute_progression_snapshots([_log("2026-03-01", "Curl", [(5, 0.004)])])
    assert snapshots == []


def test_small_loads_keep_unrounded_best_until_snapshot():
    snapshots = compute_progression_snapshots([
        _log("2026-03-01", "Lateral Raise", [(5, 0.004), (10, 0.3)]),
    ])
    assert snapshots[0].e1rm == 0.4


def test_bodyweight_and_high_rep_sets_produce_no_snapshot():
    snapshots = compute_progression_snapshots([
        _log("2026-03-01", "Push-up", [(20, 0), (15, 0)]),
        _log("2026-03-02", "Leg Extension", [(15, 40), (20, 35)]),
    ])
    assert snapshots == []


def test_volume_counts_ineligible_sets():
    snapshots = compute_progression_snapshots([_log("2026-03-01", "Bench Press", [(5, 100), (15, 50)])])
    assert snapshots[0].total_volume == 1250.0
    assert snapshots[0].e1rm == 116.67


def test_names_are_merged_case_insensitively():
    snapshots = compute_progression_snapshots([
        _log("2026-03-01", "Back Squat", [(5, 100)]),
        _log("2026-03-08", "back squat ", [(5, 105)]),
        _log("2026-03-15", "BACK SQUAT", [(5, 110)]),
    ])
    assert [s.exercise_name for s in snapshots] == ["back squat"]
    assert snapshots[0].sample_size == 3


def test_same_day_sessions_count_once():
    snapshots = compute_progression_snapshots([
        _log("2026-03-01", "Deadlift", [(5, 140)]),
        _log("2026-03-01", "Deadlift", [(3, 160)]),
    ])
    snap = snapshots[0]
    assert snap.sample_size == 1
    assert snap.trend_score == 0
    assert snap.e1rm == estimate_e1rm(160, 3)


def test_single_session_has_flat_trend():
    snapshots = compute_progression_snapshots([_log("2026-03-01", "Deadlift", [(5, 140)])])
    assert snapshots[0].trend_score == 0


def test_falling_strength_gives_negative_trend():
    snapshots = compute_progression_snapshots([
        _log("2026-03-01", "Bench Press", [(5, 110)]),
        _log("2026-03-08", "Bench Press", [(5, 105)]),
        _log("2026-03-15", "Bench Press", [(5, 100)]),
    ])
    assert snapshots[0].trend_score < -0.03


def test_flat_strength_gives_zero_trend():
    snapshots = compute_progression_snapshots([
        _log("2026-03-01", "Bench Press", [(5, 100)]),
        _log("2026-03-08", "Bench Press", [(5, 100)]),
    ])
    assert snapshots[0].trend_score == 0


def test_input_order_does_not_matter():
    logs = [
        _log("2026-03-01", "Back Squat", [(5, 100)]),
        _log("2026-03-08", "Bench Press", [(8, 70)]),
        _log("2026-03-15", "Back Squat", [(3, 115)]),
    ]
    assert compute_progression_snapshots(logs) == compute_progression_snapshots(list(reversed(logs)))


def test_recompute_is_idempotent():
    logs = [
        _log("2026-03-01", "Back Squat", [(5, 100)]),
        _log("2026-03-08", "Back Squat", [(5, 102.5)]),
    ]
    assert compute_progression_snapshots(logs) == compute_progression_snapshots(logs)


def test_heavier_set_never_lowers_e1rm():
    base = [(5, 100), (8, 80)]
    before = compute_progression_snapshots([_log("2026-03-01", "Squat", base)])[0].e1rm
    for i in range(len(base)):
        heavier = list(base)
        heavier[i] = (base[i][0], base[i][1] + 7.5)
        after = compute_progression_snapshots([_log("2026-03-01", "Squat", heavier)])[0].e1rm
        assert after >= before


def test_snapshots_sorted_by_name():
    snapshots = compute_progression_snapshots([
        WorkoutLogEntry.model_validate({
            "date": "2026-03-01",
            "exercises": [
                {"name": "Row", "sets": [{"reps": 8, "load_kg": 60}]},
                {"name": "Bench Press", "sets": [{"reps": 5, "load_kg": 80}]},
            ],
        })
    ])
    assert [s.exercise_name for s in snapshots] == ["bench press", "row"]


# --- compute_trend_score ---

def test_trend_score_normalized_by_mean():
    bests = [(date(2026, 1, 1), 100.0), (date(2026, 1, 8), 110.0)]
    assert compute_trend_score(bests) == pytest.approx(10 / 105, abs=1e-4)


def test_trend_score_needs_two_sessions():
    assert compute_trend_score([(date(2026, 1, 1), 100.0)]) == 0.0
    assert compute_trend_score([]) == 0.0


# --- ProgressionSnapshot ---

def test_snapshot_canonicalizes_name():
    snap = ProgressionSnapshot("Back Squat ", 120.0, 1000.0, 0.0, None, 2)
    assert snap.exercise_name == "back squat"


def test_snapshot_without_samples_cannot_carry_e1rm():
    with pytest.raises(ValueError):
        ProgressionSnapshot("squat", 120.0, 0.0, 0.0, None, 0)


def test_snapshot_without_samples_cannot_carry_trend():
    with pytest.raises(ValueError):
        ProgressionSnapshot("squat", None, 0.0, 0.05, None, 0)


def test_empty_snapshot_is_valid():
    snap = ProgressionSnapshot("squat", None, 0.0, 0.0, None, 0)
    assert snap.e1rm is None


def test_snapshot_rejects_blank_name():
    with pytest.raises(ValueError):
        ProgressionSnapshot("   ", None, 0.0, 0.0, None, 0)


def test_snapshot_to_dict():
    snap = ProgressionSnapshot("squat", 120.0, 1000.0, 0.01, date(2026, 3, 1), 3)
    assert snap.to_dict()["last_performed_date"] == "2026-03-01"


# --- most_recent_sessions ---

def test_most_recent_sessions_keeps_newest():
    logs = [
        _log("2026-03-08", "Squat", [(5, 100)]),
        _log("2026-03-01", "Squat", [(5, 100)]),
        _log("2026-03-15", "Squat", [(5, 100)]),
    ]
    recent = most_recent_sessions(logs, 2)
    assert [w.date for w in recent] == [date(2026, 3, 15), date(2026, 3, 8)]
