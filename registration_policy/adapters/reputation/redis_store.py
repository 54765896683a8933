"""Redis-backed reputation tracker.

Counters live in Redis so every worker shares the same view of a requester.
Each key is incremented and given its window expiry in a single MULTI/EXEC
transaction, which is what keeps concurrent increments from being lost and
keeps a crashed worker from leaving a key without a TTL.
"""

from __future__ import annotations

from typing import Any

import redis.asyncio as redis_asyncio
from redis.exceptions import RedisError

from registration_policy.adapters.reputation.base import AbstractReputationTracker
from registration_policy.core.errors import RuleEvaluationError


class RedisReputationTracker(AbstractReputationTracker):
    """Reputation tracker using ``INCR`` + ``EXPIRE NX`` per key.

    The window opens when Redis creates the key and closes when the key
    expires, so ``now`` is not needed to decide resets; Redis' own clock is
    authoritative.
    """

    def __init__(
        self,
        *,
        window_seconds: int,
        client: Any = None,
        url: str | None = None,
        key_prefix: str = "",
        socket_timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            window_seconds: Length of the counting window in seconds.
            client: Pre-built ``redis.asyncio.Redis`` client (mainly for tests).
            url: Connection URL used when no client is given.
            key_prefix: Namespace prepended to every key.
            socket_timeout_seconds: Socket-level timeout for the connection.

        Raises:
            ValueError: If window_seconds is invalid or no connection info is given.
        """
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if client is None and not url:
            raise ValueError("either client or url is required")

        self.window_seconds = window_seconds
        self._key_prefix = key_prefix
        self._client = client or redis_asyncio.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout_seconds,
            socket_connect_timeout=socket_timeout_seconds,
        )

    async def increment_and_check(self, key: str, now: float) -> int:
        if not key:
            raise ValueError("key must be a non-empty string")

        full_key = f"{self._key_prefix}{key}"
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(full_key)
                pipe.expire(full_key, self.window_seconds, nx=True)
                count, _ = await pipe.execute()
        except RedisError as exc:
            raise RuleEvaluationError(
                code="reputation_store_unavailable",
                message=f"Redis reputation store error: {exc}",
                details={"dependency": "redis"},
            ) from exc

        return int(count)

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def backend_name(self) -> str:
        return "redis"
