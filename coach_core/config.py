"""Coaching core configuration with environment-specific profiles.

Supports dev, staging, production and test environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RateLimitPolicy:
    """Token bucket parameters for one route."""

    capacity: int
    refill_per_second: float

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")
        if not math.isfinite(self.refill_per_second) or self.refill_per_second <= 0:
            raise ValueError("refill_per_second must be a positive finite number")

    @classmethod
    def per_minute(cls, requests: int) -> "RateLimitPolicy":
        return cls(capacity=requests, refill_per_second=requests / 60)

    @classmethod
    def parse(cls, raw: str) -> "RateLimitPolicy":
        """Parse ``"<capacity>/<seconds>"``, e.g. ``"20/60"`` for 20 per minute."""
        capacity_raw, _, seconds_raw = raw.partition("/")
        capacity = int(capacity_raw.strip())
        seconds = float(seconds_raw.strip() or "60")
        if seconds <= 0:
            raise ValueError("rate limit window must be positive")
        return cls(capacity=capacity, refill_per_second=capacity / seconds)


# Route names double as the prefix of the caller-supplied rate-limit key.
ROUTE_ADAPT_SESSION = "adapt-session"
ROUTE_NEXT_TARGETS = "progression-next-targets"
ROUTE_RECOMPUTE = "progression-recompute"
ROUTE_SWAP_EXERCISE = "swap-exercise"

_DEFAULT_ROUTE_LIMITS: dict[str, int] = {
    ROUTE_ADAPT_SESSION: 25,
    ROUTE_NEXT_TARGETS: 20,
    ROUTE_RECOMPUTE: 8,
    ROUTE_SWAP_EXERCISE: 20,
}


def _default_policies() -> dict[str, RateLimitPolicy]:
    return {route: RateLimitPolicy.per_minute(n) for route, n in _DEFAULT_ROUTE_LIMITS.items()}


@dataclass(frozen=True)
class Settings:
    """Immutable coaching-core settings resolved from environment."""

    app_env: str = "dev"
    log_level: str = "INFO"
    rate_limit_enabled: bool = True

    # Progression
    lookback_sessions: int = 150
    targets_read_limit: int = 100
    max_target_exercises: int = 25

    # Session adaptation
    default_minutes_available: int = 45

    rate_limits: dict[str, RateLimitPolicy] = field(default_factory=_default_policies)

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    def policy_for(self, route: str) -> RateLimitPolicy:
        try:
            return self.rate_limits[route]
        except KeyError:
            raise ValueError(f"no rate limit policy configured for route {route!r}") from None


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
    },
    "staging": {
        "log_level": "INFO",
    },
    "production": {
        "log_level": "WARNING",
        "rate_limits": {ROUTE_RECOMPUTE: 4},
    },
    "test": {
        "log_level": "INFO",
        "rate_limit_enabled": False,
    },
}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _route_env_name(route: str) -> str:
    return "RATE_LIMIT_" + route.upper().replace("-", "_")


def resolve_rate_limits(profile: dict) -> dict[str, RateLimitPolicy]:
    """Merge default route budgets, profile overrides and RATE_LIMIT_<ROUTE> env vars."""
    limits = dict(_DEFAULT_ROUTE_LIMITS)
    limits.update(profile.get("rate_limits", {}))
    policies = {route: RateLimitPolicy.per_minute(n) for route, n in limits.items()}
    for route in policies:
        raw = os.getenv(_route_env_name(route))
        if raw:
            policies[route] = RateLimitPolicy.parse(raw)
    return policies


def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        rate_limit_enabled=_env_flag("RATE_LIMIT_ENABLED", profile.get("rate_limit_enabled", True)),
        lookback_sessions=int(os.getenv("PROGRESSION_LOOKBACK_SESSIONS", "150")),
        targets_read_limit=int(os.getenv("PROGRESSION_TARGETS_READ_LIMIT", "100")),
        max_target_exercises=int(os.getenv("PROGRESSION_MAX_TARGET_EXERCISES", "25")),
        default_minutes_available=int(os.getenv("DEFAULT_MINUTES_AVAILABLE", "45")),
        rate_limits=resolve_rate_limits(profile),
    )
