"""Unit tests for the Redis reputation tracker (Redis client mocked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from registration_policy.adapters.reputation.redis_store import RedisReputationTracker
from registration_policy.core.errors import RuleEvaluationError


def _client_with_pipeline(execute: AsyncMock) -> tuple[MagicMock, MagicMock]:
    pipe = MagicMock()
    pipe.execute = execute
    pipe.__aenter__ = AsyncMock(return_value=pipe)
    pipe.__aexit__ = AsyncMock(return_value=None)

    client = MagicMock()
    client.pipeline = MagicMock(return_value=pipe)
    client.aclose = AsyncMock()
    return client, pipe


@pytest.mark.asyncio
async def test_increments_and_sets_window_expiry_in_one_transaction() -> None:
    client, pipe = _client_with_pipeline(AsyncMock(return_value=[3, True]))
    tracker = RedisReputationTracker(window_seconds=60, client=client, key_prefix="rp:")

    count = await tracker.increment_and_check("requester_rate_limit:ip:203.0.113.5", 1000.0)

    assert count == 3
    client.pipeline.assert_called_once_with(transaction=True)
    pipe.incr.assert_called_once_with("rp:requester_rate_limit:ip:203.0.113.5")
    pipe.expire.assert_called_once_with(
        "rp:requester_rate_limit:ip:203.0.113.5", 60, nx=True
    )


@pytest.mark.asyncio
async def test_redis_errors_become_rule_evaluation_errors() -> None:
    client, _ = _client_with_pipeline(AsyncMock(side_effect=RedisConnectionError("refused")))
    tracker = RedisReputationTracker(window_seconds=60, client=client)

    with pytest.raises(RuleEvaluationError) as exc_info:
        await tracker.increment_and_check("k", 1000.0)

    assert exc_info.value.code == "reputation_store_unavailable"
    assert exc_info.value.details == {"dependency": "redis"}


@pytest.mark.asyncio
async def test_sweep_is_a_no_op_and_close_releases_client() -> None:
    client, _ = _client_with_pipeline(AsyncMock(return_value=[1, True]))
    tracker = RedisReputationTracker(window_seconds=60, client=client)

    assert await tracker.sweep(1000.0) == 0
    await tracker.close()

    client.aclose.assert_awaited_once()
    assert tracker.backend_name == "redis"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window_seconds": 0, "url": "redis://localhost:6379/0"},
        {"window_seconds": 60},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RedisReputationTracker(**kwargs)
