"""Factory for the configured reputation tracker."""

from __future__ import annotations

from registration_policy.adapters.reputation.base import AbstractReputationTracker
from registration_policy.adapters.reputation.in_memory import InMemoryReputationTracker
from registration_policy.adapters.reputation.redis_store import RedisReputationTracker
from registration_policy.core.config import ReputationSettings, settings
from registration_policy.core.errors import ValidationAppError


def create_reputation_tracker(
    reputation_settings: ReputationSettings | None = None,
    *,
    timeout_seconds: float | None = None,
) -> AbstractReputationTracker:
    """Instantiate the reputation tracker selected by ``REPUTATION_BACKEND``.

    Args:
        reputation_settings: Settings to use; defaults to the global settings.
        timeout_seconds: Socket timeout for remote stores; defaults to the
            policy evaluation timeout.

    Raises:
        ValidationAppError: If backend-specific requirements are not met.
    """
    cfg = reputation_settings or settings.reputation

    if cfg.backend == "memory":
        return InMemoryReputationTracker(window_seconds=cfg.window_seconds)

    if cfg.backend == "redis":
        if not cfg.redis_url:
            raise ValidationAppError(
                code="reputation_missing_redis_url",
                message="Redis reputation backend requires REPUTATION_REDIS_URL",
            )
        return RedisReputationTracker(
            window_seconds=cfg.window_seconds,
            url=cfg.redis_url,
            key_prefix=cfg.key_prefix,
            socket_timeout_seconds=timeout_seconds or settings.policy.evaluation_timeout_seconds,
        )

    raise ValidationAppError(
        code="reputation_unknown_backend",
        message=f"Unknown reputation backend: '{cfg.backend}'. Supported backends: memory, redis",
    )
