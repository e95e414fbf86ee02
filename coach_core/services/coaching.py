"""Rate-limited coaching operations composed from the decision core.

Each operation validates its payload at the boundary, spends a token from the
``"<route>:<user_id>"`` bucket, and returns a plain dict ready for
serialization. Rate-limit rejection is returned as a payload,
never raised; bad input raises ``CoachingInputError``.
"""

from __future__ import annotations

import copy
from typing import Any, Optional

from pydantic import ValidationError

from coach_core.config import (
    ROUTE_ADAPT_SESSION,
    ROUTE_NEXT_TARGETS,
    ROUTE_RECOMPUTE,
    ROUTE_SWAP_EXERCISE,
    Settings,
    get_settings,
)
from coach_core.errors import INVALID_INPUT, CoachingInputError, rate_limited_payload
from coach_core.logging_config import ctx, get_logger, setup_logging
from coach_core.services.exercise_swap import SWAP_RELIABILITY, choose_replacement
from coach_core.services.progression import ProgressionSnapshot, compute_progression_snapshots
from coach_core.services.rate_limiter import BucketStore, RateLimitDecision, TokenBucketLimiter
from coach_core.services.session_adapter import adapt_session
from coach_core.services.stores import SnapshotStore, WorkoutStore
from coach_core.services.targets import select_targets
from coach_core.validators import AdaptSessionInput, SwapRequest

logger = get_logger(__name__)


def parse_exercise_names(raw: Optional[str], limit: int = 25) -> list[str]:
    """Split a comma-separated ``exercises`` query value; blanks dropped, capped at ``limit``."""
    if not raw:
        return []
    names = [entry.strip() for entry in raw.split(",")]
    return [n for n in names if n][:limit]


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


class CoachingService:
    def __init__(
        self,
        workouts: WorkoutStore,
        snapshots: SnapshotStore,
        limiter: Optional[TokenBucketLimiter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.limiter = limiter or TokenBucketLimiter(BucketStore())
        self.workouts = workouts
        self.snapshots = snapshots

    def _admit(self, route: str, user_id: str) -> RateLimitDecision:
        if not self.settings.rate_limit_enabled:
            return RateLimitDecision(allowed=True)
        key = f"{route}:{user_id}"
        return self.limiter.consume_policy(key, self.settings.policy_for(route))

    # -- progression --

    def recompute_snapshots(self, user_id: str) -> list[ProgressionSnapshot]:
        """Recompute every snapshot from the lookback window and overwrite the stored rows."""
        workouts = self.workouts.recent_workouts(user_id, self.settings.lookback_sessions)
        snapshots = compute_progression_snapshots(workouts)
        self.snapshots.upsert(user_id, snapshots)
        logger.debug(
            "progression_recomputed",
            extra=ctx(user_id=user_id, sessions=len(workouts), snapshots=len(snapshots)),
        )
        return snapshots

    def recompute(self, user_id: str) -> dict[str, Any]:
        decision = self._admit(ROUTE_RECOMPUTE, user_id)
        if not decision.allowed:
            return rate_limited_payload(decision.retry_after_seconds)
        snapshots = self.recompute_snapshots(user_id)
        return {
            "snapshots": [s.to_dict() for s in snapshots],
            "snapshot_count": len(snapshots),
        }

    def next_targets(
        self,
        user_id: str,
        exercise_names: Optional[list[str] | str] = None,
    ) -> dict[str, Any]:
        """Targets for the user's exercises, recomputing once when nothing is stored yet.

        ``exercise_names`` may be a list or the raw comma-separated query value.
        """
        decision = self._admit(ROUTE_NEXT_TARGETS, user_id)
        if not decision.allowed:
            return rate_limited_payload(decision.retry_after_seconds)

        cap = self.settings.max_target_exercises
        if isinstance(exercise_names, str):
            names = parse_exercise_names(exercise_names, cap)
        else:
            names = [n for n in exercise_names or [] if n.strip()][:cap]
        limit = self.settings.targets_read_limit
        rows = self.snapshots.read(user_id, names, limit)
        if not rows:
            self.recompute_snapshots(user_id)
            rows = self.snapshots.read(user_id, names, limit)

        targets = select_targets(rows, names, limit)
        if not targets:
            logger.info("progression_sparse_history", extra=ctx(user_id=user_id))
        return {
            "targets": [t.to_dict() for t in targets],
            "sparse_history": not targets,
        }

    # -- session planning --

    def adapt_session(self, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not payload.get("current_exercises"):
            raise CoachingInputError("current_exercises is required.")
        payload = dict(payload)
        payload.setdefault("minutes_available", self.settings.default_minutes_available)
        try:
            request = AdaptSessionInput.model_validate(payload)
        except ValidationError as exc:
            logger.info("adapt_session_rejected", extra=ctx(user_id=user_id))
            raise CoachingInputError(_validation_message(exc), code=INVALID_INPUT) from exc

        decision = self._admit(ROUTE_ADAPT_SESSION, user_id)
        if not decision.allowed:
            return rate_limited_payload(decision.retry_after_seconds)

        result = adapt_session(request.current_exercises, request)
        logger.debug(
            "session_adapted",
            extra=ctx(user_id=user_id, substitutions=result.substitutions, trimmed=result.trimmed),
        )
        return result.to_dict()

    def swap_exercise(self, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            request = SwapRequest.model_validate(payload)
        except ValidationError as exc:
            raise CoachingInputError(_validation_message(exc)) from exc

        decision = self._admit(ROUTE_SWAP_EXERCISE, user_id)
        if not decision.allowed:
            return rate_limited_payload(decision.retry_after_seconds)

        replacement = choose_replacement(request)
        return {
            "replacement": replacement.model_dump(exclude={"image_url"}),
            "reliability": copy.deepcopy(SWAP_RELIABILITY),
        }


def build_service(
    workouts: WorkoutStore,
    snapshots: SnapshotStore,
    settings: Optional[Settings] = None,
    bucket_store: Optional[BucketStore] = None,
) -> CoachingService:
    """Process entry point: configure logging and wire one shared bucket table.

    Pass the same ``bucket_store`` to every service built in a process so all
    of them draw on one set of per-key budgets.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    limiter = TokenBucketLimiter(bucket_store if bucket_store is not None else BucketStore())
    return CoachingService(workouts, snapshots, limiter=limiter, settings=settings)
