"""Rule evaluation against a request and a reputation snapshot.

Evaluation runs in two phases. First the evaluator asks every stateful rule
for its reputation key and performs the increment-and-check calls, each
bounded by a timeout. The counts are frozen into a ``ReputationSnapshot``.
Then every rule is evaluated synchronously against the same input and
snapshot, so the outcome list is a pure function of the two.

A rule whose dependency failed (tracker error, timeout, or the rule itself
raising) is resolved by the configured failure mode and logged:
- ``closed``: fatal reject with reason ``evaluation_unavailable``
- ``open``: pass
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Literal, Sequence

from registration_policy.adapters.reputation.base import AbstractReputationTracker
from registration_policy.core.errors import RuleEvaluationError
from registration_policy.core.logging import hash_identifier
from registration_policy.services.normalizer import PolicyInput
from registration_policy.services.rules.base import ReputationSnapshot, Rule, RuleResult

logger = logging.getLogger(__name__)

FailureMode = Literal["closed", "open"]

EVALUATION_UNAVAILABLE = "evaluation_unavailable"


@dataclass(frozen=True)
class RuleOutcome:
    rule_id: str
    result: RuleResult


class RuleEvaluator:
    """Runs an ordered rule set; every rule always runs."""

    def __init__(
        self,
        rules: Sequence[Rule],
        tracker: AbstractReputationTracker | None = None,
        *,
        failure_mode: FailureMode = "closed",
        timeout_seconds: float = 0.25,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the evaluator.

        Args:
            rules: Rules in registration order; ids must be unique.
            tracker: Reputation store used by stateful rules.
            failure_mode: Resolution for rules whose dependency is unavailable.
            timeout_seconds: Bound for each increment-and-check call.
            clock: Time source returning UNIX seconds.

        Raises:
            ValueError: On duplicate rule ids, an unknown failure mode or a
                non-positive timeout.
        """
        seen: set[str] = set()
        for rule in rules:
            if rule.rule_id in seen:
                raise ValueError(f"duplicate rule id: {rule.rule_id}")
            seen.add(rule.rule_id)
        if failure_mode not in ("closed", "open"):
            raise ValueError("failure_mode must be 'closed' or 'open'")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._rules = tuple(rules)
        self._tracker = tracker
        self._failure_mode = failure_mode
        self._timeout = timeout_seconds
        self._clock = clock

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def failure_mode(self) -> FailureMode:
        return self._failure_mode

    async def _increment(self, key: str, now: float) -> int:
        if self._tracker is None:
            raise RuleEvaluationError(
                code="reputation_tracker_missing",
                message="No reputation tracker is configured",
                details={"dependency": "reputation"},
            )
        try:
            return await asyncio.wait_for(
                self._tracker.increment_and_check(key, now),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise RuleEvaluationError(
                code="reputation_timeout",
                message="Reputation store did not answer in time",
                details={"dependency": self._tracker.backend_name, "timeout_s": self._timeout},
            ) from exc
        except RuleEvaluationError:
            raise
        except Exception as exc:
            raise RuleEvaluationError(
                code="reputation_store_unavailable",
                message=f"Reputation store error: {exc}",
                details={"dependency": self._tracker.backend_name},
            ) from exc

    async def collect_snapshot(
        self, policy_input: PolicyInput, now: float
    ) -> tuple[ReputationSnapshot, dict[str, RuleEvaluationError]]:
        """Increment every reputation key the rules need, concurrently.

        Returns:
            The snapshot of observed counts, and the failures keyed by rule id.
        """
        failures: dict[str, RuleEvaluationError] = {}
        keys_by_rule: dict[str, str] = {}
        for rule in self._rules:
            try:
                key = rule.reputation_key(policy_input)
            except Exception as exc:
                failures[rule.rule_id] = RuleEvaluationError(
                    code="rule_failed",
                    message=f"Rule {rule.rule_id} could not build its reputation key: {exc}",
                    details={"rule": rule.rule_id},
                )
                continue
            if key is not None:
                keys_by_rule[rule.rule_id] = key

        keys = list(dict.fromkeys(keys_by_rule.values()))
        results = await asyncio.gather(
            *(self._increment(key, now) for key in keys),
            return_exceptions=True,
        )

        counts: dict[str, int] = {}
        errors: dict[str, RuleEvaluationError] = {}
        for key, result in zip(keys, results):
            if isinstance(result, RuleEvaluationError):
                errors[key] = result
            elif isinstance(result, BaseException):
                # cancellation is not a dependency failure
                raise result
            else:
                counts[key] = result

        for rule_id, key in keys_by_rule.items():
            if key in errors:
                failures[rule_id] = errors[key]

        return ReputationSnapshot(counts=MappingProxyType(counts)), failures

    def _resolve_failure(self, rule: Rule, error: RuleEvaluationError) -> RuleResult:
        logger.warning(
            "policy.rule_unavailable",
            extra={
                "rule": rule.rule_id,
                "error_code": error.code,
                "error_message": error.message,
                "failure_mode": self._failure_mode,
            },
        )
        if self._failure_mode == "open":
            return RuleResult.passed()
        return RuleResult.reject(EVALUATION_UNAVAILABLE, fatal=True)

    def evaluate_with_snapshot(
        self,
        policy_input: PolicyInput,
        snapshot: ReputationSnapshot,
        failures: dict[str, RuleEvaluationError] | None = None,
    ) -> list[RuleOutcome]:
        """Evaluate every rule against a fixed snapshot, in registration order."""
        failures = failures or {}
        outcomes: list[RuleOutcome] = []

        for rule in self._rules:
            error = failures.get(rule.rule_id)
            if error is not None:
                result = self._resolve_failure(rule, error)
            else:
                try:
                    result = rule.evaluate(policy_input, snapshot)
                except RuleEvaluationError as exc:
                    result = self._resolve_failure(rule, exc)
                except Exception as exc:
                    logger.exception("policy.rule_crashed", extra={"rule": rule.rule_id})
                    result = self._resolve_failure(
                        rule,
                        RuleEvaluationError(
                            code="rule_failed",
                            message=f"{type(exc).__name__}: {exc}",
                            details={"rule": rule.rule_id},
                        ),
                    )
                else:
                    if not isinstance(result, RuleResult):
                        result = self._resolve_failure(
                            rule,
                            RuleEvaluationError(
                                code="rule_failed",
                                message=f"Rule returned {type(result).__name__}, not RuleResult",
                                details={"rule": rule.rule_id},
                            ),
                        )
            outcomes.append(RuleOutcome(rule_id=rule.rule_id, result=result))

        return outcomes

    async def evaluate(self, policy_input: PolicyInput, now: float | None = None) -> list[RuleOutcome]:
        """Evaluate all rules for one registration attempt.

        Args:
            policy_input: Normalized request.
            now: Evaluation time; defaults to the evaluator's clock.

        Returns:
            One outcome per rule, in registration order.
        """
        now = self._clock() if now is None else now
        snapshot, failures = await self.collect_snapshot(policy_input, now)
        if snapshot.counts:
            logger.debug(
                "policy.reputation_snapshot",
                extra={
                    "keys": [hash_identifier(k) for k in snapshot.counts],
                    "counts": list(snapshot.counts.values()),
                },
            )
        return self.evaluate_with_snapshot(policy_input, snapshot, failures)
