"""Registration policy service orchestrating normalization, rules and aggregation.

Every call ends in exactly one of two ways: an ``InputError`` for a request
that does not match the contract, or a ``Decision``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from registration_policy.adapters.reputation.base import AbstractReputationTracker
from registration_policy.core.config import Settings, settings as global_settings
from registration_policy.core.errors import InputError
from registration_policy.core.logging import hash_identifier
from registration_policy.services.aggregator import Decision, aggregate
from registration_policy.services.evaluator import RuleEvaluator
from registration_policy.services.normalizer import PolicyInput, normalize_request
from registration_policy.services.rules import build_default_rules

logger = logging.getLogger(__name__)


class RegistrationPolicyService:
    """Decides whether a dynamic client registration attempt is admitted."""

    def __init__(self, evaluator: RuleEvaluator) -> None:
        self._evaluator = evaluator

    @property
    def evaluator(self) -> RuleEvaluator:
        return self._evaluator

    async def evaluate(self, raw_request: Any, *, now: float | None = None) -> Decision:
        """Evaluate a raw registration request.

        Args:
            raw_request: Decoded JSON body following the request contract.
            now: Evaluation time override (UNIX seconds).

        Returns:
            The policy decision.

        Raises:
            InputError: If the request is structurally invalid. No rule runs.
        """
        try:
            policy_input = normalize_request(raw_request)
        except InputError as exc:
            logger.info(
                "policy.input_rejected",
                extra={"error_code": exc.code, "field": (exc.details or {}).get("field")},
            )
            raise

        return await self.evaluate_input(policy_input, now=now)

    async def evaluate_input(self, policy_input: PolicyInput, *, now: float | None = None) -> Decision:
        """Evaluate an already normalized request."""
        start = time.perf_counter()
        outcomes = await self._evaluator.evaluate(policy_input, now=now)
        decision = aggregate(outcomes)

        ip = policy_input.requester.ip_address
        logger.info(
            "policy.decision",
            extra={
                "verdict": decision.verdict.value,
                "violations": [d.rule for d in decision.violations],
                "warnings": [d.rule for d in decision.warnings],
                "rules_evaluated": len(outcomes),
                "requester_hash": hash_identifier(ip) if ip else None,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return decision


def create_policy_service(
    tracker: AbstractReputationTracker | None,
    *,
    app_settings: Settings | None = None,
    clock: Callable[[], float] = time.time,
) -> RegistrationPolicyService:
    """Build the service with the default rule set from configuration."""

    cfg = app_settings or global_settings
    evaluator = RuleEvaluator(
        build_default_rules(cfg.policy),
        tracker,
        failure_mode=cfg.policy.failure_mode,
        timeout_seconds=cfg.policy.evaluation_timeout_seconds,
        clock=clock,
    )
    return RegistrationPolicyService(evaluator)
