"""Anti-abuse rules over the requester context."""

from __future__ import annotations

import fnmatch
import hashlib
from typing import Iterable, Literal

from registration_policy.core.errors import RuleEvaluationError
from registration_policy.services.normalizer import PolicyInput
from registration_policy.services.rules.base import ReputationSnapshot, Rule, RuleResult

# Requests without an ip_address or user_agent share one bucket of their own;
# a hex digest never equals the marker
UNKNOWN_IP = "unknown"
UNKNOWN_USER_AGENT = "unknown"


class UserAgentPatternRule(Rule):
    """Flag user agents that look like scripted HTTP clients."""

    rule_id = "blocked_user_agent_pattern"

    def __init__(self, *, patterns: Iterable[str]) -> None:
        self.patterns = tuple(patterns)
        self._lowered = tuple(p.lower() for p in self.patterns)

    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        user_agent = policy_input.requester.user_agent
        if user_agent is None:
            return RuleResult.passed()

        candidate = user_agent.strip().lower()
        for pattern, lowered in zip(self.patterns, self._lowered):
            if fnmatch.fnmatchcase(candidate, lowered):
                return RuleResult.warn(
                    f"user agent matches scripted-client pattern '{pattern}'"
                )
        return RuleResult.passed()


class RequesterRateLimitRule(Rule):
    """Deny requesters that register more than ``threshold`` times per window."""

    rule_id = "requester_rate_limit"

    def __init__(
        self,
        *,
        threshold: int,
        key_strategy: Literal["ip", "ip_user_agent"] = "ip",
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self.key_strategy = key_strategy

    def reputation_key(self, policy_input: PolicyInput) -> str | None:
        ip = policy_input.requester.ip_address or UNKNOWN_IP
        if self.key_strategy == "ip_user_agent":
            ua = policy_input.requester.user_agent
            ua_part = (
                UNKNOWN_USER_AGENT
                if ua is None
                else hashlib.sha256(ua.encode()).hexdigest()[:16]
            )
            return f"{self.rule_id}:ip_ua:{ip}:{ua_part}"
        return f"{self.rule_id}:ip:{ip}"

    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        key = self.reputation_key(policy_input)
        count = snapshot.count_for(key)
        if count is None:
            raise RuleEvaluationError(
                code="reputation_count_missing",
                message="No reputation count was recorded for this requester",
                details={"rule": self.rule_id},
            )
        if count > self.threshold:
            return RuleResult.reject(
                f"{count} registration attempts from this requester exceed "
                f"the limit of {self.threshold} per window",
                fatal=True,
            )
        return RuleResult.passed()
