"""Tests for configuration module."""

from __future__ import annotations

import pytest

from coach_core.config import (
    ROUTE_ADAPT_SESSION,
    ROUTE_NEXT_TARGETS,
    ROUTE_RECOMPUTE,
    ROUTE_SWAP_EXERCISE,
    _ENV_PROFILES,
    RateLimitPolicy,
    Settings,
    get_settings,
)


def test_settings_dataclass():
    s = Settings()
    assert s.app_env == "dev"
    assert s.lookback_sessions == 150
    assert s.targets_read_limit == 100
    assert s.max_target_exercises == 25
    assert s.default_minutes_available == 45
    assert s.rate_limit_enabled is True


def test_settings_frozen():
    s = Settings()
    try:
        s.app_env = "production"
        assert False, "Should raise"
    except AttributeError:
        pass


def test_settings_is_production():
    s = Settings(app_env="production")
    assert s.is_production is True
    assert s.is_dev is False


def test_default_route_budgets():
    s = Settings()
    assert s.policy_for(ROUTE_ADAPT_SESSION).capacity == 25
    assert s.policy_for(ROUTE_NEXT_TARGETS).capacity == 20
    assert s.policy_for(ROUTE_RECOMPUTE).capacity == 8
    assert s.policy_for(ROUTE_SWAP_EXERCISE).refill_per_second == pytest.approx(20 / 60)


def test_unknown_route_policy():
    with pytest.raises(ValueError):
        Settings().policy_for("export")


def test_rate_limit_policy_parse():
    policy = RateLimitPolicy.parse("10/3600")
    assert policy.capacity == 10
    assert policy.refill_per_second == pytest.approx(10 / 3600)
    assert RateLimitPolicy.parse("12").refill_per_second == pytest.approx(12 / 60)


@pytest.mark.parametrize("capacity,rate", [(0, 1.0), (3, 0.0), (3, float("nan"))])
def test_rate_limit_policy_validation(capacity, rate):
    with pytest.raises(ValueError):
        RateLimitPolicy(capacity, rate)


def test_get_settings_uses_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("PROGRESSION_LOOKBACK_SESSIONS", "60")
    monkeypatch.setenv("RATE_LIMIT_ADAPT_SESSION", "5/60")
    s = get_settings()
    assert s.app_env == "staging"
    assert s.lookback_sessions == 60
    assert s.policy_for(ROUTE_ADAPT_SESSION).capacity == 5


def test_get_settings_production_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("RATE_LIMIT_PROGRESSION_RECOMPUTE", raising=False)
    s = get_settings()
    assert s.log_level == "WARNING"
    assert s.policy_for(ROUTE_RECOMPUTE).capacity == 4


def test_test_profile_disables_rate_limit(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("RATE_LIMIT_ENABLED", raising=False)
    assert get_settings().rate_limit_enabled is False


def test_rate_limit_flag_override(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
    assert get_settings().rate_limit_enabled is True


def test_env_profiles_exist():
    for env in ("dev", "staging", "production", "test"):
        assert env in _ENV_PROFILES


def test_dev_profile_debug_logging():
    assert _ENV_PROFILES["dev"]["log_level"] == "DEBUG"
