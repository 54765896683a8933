"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might build settings.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("REPUTATION_BACKEND", "memory")
os.environ.setdefault("REPUTATION_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("POLICY_RATE_LIMIT_THRESHOLD", "5")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from registration_policy.adapters.reputation.in_memory import InMemoryReputationTracker  # noqa: E402
from registration_policy.services.normalizer import PolicyInput, normalize_request  # noqa: E402


class FakeClock:
    """Deterministic clock used to test window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker() -> InMemoryReputationTracker:
    return InMemoryReputationTracker(window_seconds=60)


@pytest.fixture
def make_input():
    """Factory building a normalized PolicyInput from metadata and requester fields."""

    def _make(client_metadata: dict | None = None, **requester: str) -> PolicyInput:
        return normalize_request(
            {"client_metadata": client_metadata or {}, "requester": dict(requester)}
        )

    return _make
