"""Tests for settings parsing and the reputation tracker factory."""

import pytest
from pydantic import ValidationError

from registration_policy.adapters.reputation import (
    InMemoryReputationTracker,
    RedisReputationTracker,
    create_reputation_tracker,
)
from registration_policy.core.config import PolicySettings, ReputationSettings, split_csv
from registration_policy.core.errors import ValidationAppError


def test_split_csv_trims_dedupes_and_keeps_order() -> None:
    assert split_csv(" curl/*, wget/* ,curl/*,, ") == ["curl/*", "wget/*"]
    assert split_csv(None) == []


def test_policy_settings_defaults_fail_closed(monkeypatch) -> None:
    monkeypatch.delenv("POLICY_FAILURE_MODE", raising=False)
    assert PolicySettings().failure_mode == "closed"


def test_policy_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("POLICY_FAILURE_MODE", "open")
    monkeypatch.setenv("POLICY_RATE_LIMIT_KEY_STRATEGY", "ip_user_agent")

    cfg = PolicySettings()

    assert cfg.failure_mode == "open"
    assert cfg.rate_limit_key_strategy == "ip_user_agent"


def test_policy_settings_reject_unknown_failure_mode(monkeypatch) -> None:
    monkeypatch.setenv("POLICY_FAILURE_MODE", "maybe")

    with pytest.raises(ValidationError):
        PolicySettings()


def test_factory_builds_memory_tracker() -> None:
    tracker = create_reputation_tracker(ReputationSettings(backend="memory", window_seconds=30))

    assert isinstance(tracker, InMemoryReputationTracker)
    assert tracker.window_seconds == 30


def test_factory_builds_redis_tracker() -> None:
    tracker = create_reputation_tracker(
        ReputationSettings(backend="redis", redis_url="redis://localhost:6379/0"),
        timeout_seconds=0.5,
    )

    assert isinstance(tracker, RedisReputationTracker)


def test_factory_requires_redis_url() -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        create_reputation_tracker(ReputationSettings(backend="redis", redis_url=None))

    assert exc_info.value.code == "reputation_missing_redis_url"
