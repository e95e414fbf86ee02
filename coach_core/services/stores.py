"""Collaborator contracts for workout history and snapshot persistence.

The core never talks to a database; callers pass objects satisfying these
protocols. The in-memory versions back tests and local runs.
"""

from __future__ import annotations

import threading
from typing import Iterable, Optional, Protocol

from coach_core.services.progression import ProgressionSnapshot, most_recent_sessions, normalize_exercise_name
from coach_core.validators import WorkoutLogEntry


class WorkoutStore(Protocol):
    def recent_workouts(self, user_id: str, limit: int) -> list[WorkoutLogEntry]: ...


class SnapshotStore(Protocol):
    def upsert(self, user_id: str, snapshots: Iterable[ProgressionSnapshot]) -> None: ...

    def read(self, user_id: str, exercise_names: Optional[list[str]] = None,
             limit: int = 100) -> list[ProgressionSnapshot]: ...


class InMemoryWorkoutStore:
    def __init__(self) -> None:
        self._logs: dict[str, list[WorkoutLogEntry]] = {}
        self._lock = threading.Lock()

    def add(self, user_id: str, entry: WorkoutLogEntry) -> None:
        with self._lock:
            self._logs.setdefault(user_id, []).append(entry)

    def recent_workouts(self, user_id: str, limit: int) -> list[WorkoutLogEntry]:
        with self._lock:
            logs = list(self._logs.get(user_id, []))
        return most_recent_sessions(logs, limit)


class InMemorySnapshotStore:
    """Snapshots keyed by (user, canonical exercise name); writes overwrite, never merge."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], ProgressionSnapshot] = {}
        self._lock = threading.Lock()

    def upsert(self, user_id: str, snapshots: Iterable[ProgressionSnapshot]) -> None:
        with self._lock:
            for snapshot in snapshots:
                # Re-insert so the most recently written rows read first.
                self._rows.pop((user_id, snapshot.exercise_name), None)
                self._rows[(user_id, snapshot.exercise_name)] = snapshot

    def read(self, user_id: str, exercise_names: Optional[list[str]] = None,
             limit: int = 100) -> list[ProgressionSnapshot]:
        wanted = {normalize_exercise_name(n) for n in exercise_names or []}
        with self._lock:
            rows = [
                snap for (uid, name), snap in reversed(list(self._rows.items()))
                if uid == user_id and (not wanted or name in wanted)
            ]
        return rows[:limit]
