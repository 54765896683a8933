"""Rule abstraction shared by every registration policy check."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import ClassVar, Mapping

from registration_policy.services.normalizer import PolicyInput


class Outcome(str, enum.Enum):
    PASS = "pass"
    WARN = "warn"
    REJECT = "reject"


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule.

    ``fatal`` only has meaning for rejects: a fatal reject guarantees a deny.
    """

    outcome: Outcome
    reason: str | None = None
    fatal: bool = False

    @classmethod
    def passed(cls) -> "RuleResult":
        return cls(Outcome.PASS)

    @classmethod
    def warn(cls, reason: str) -> "RuleResult":
        return cls(Outcome.WARN, reason)

    @classmethod
    def reject(cls, reason: str, *, fatal: bool = False) -> "RuleResult":
        return cls(Outcome.REJECT, reason, fatal)

    @property
    def is_fatal_reject(self) -> bool:
        return self.outcome is Outcome.REJECT and self.fatal


@dataclass(frozen=True)
class ReputationSnapshot:
    """Attempt counts observed for this evaluation, keyed by reputation key.

    Built once by the evaluator before any rule runs.
    """

    counts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def count_for(self, key: str) -> int | None:
        return self.counts.get(key)


class Rule(ABC):
    """A named predicate over a request and the reputation snapshot.

    Stateful rules override ``reputation_key`` to name the counter they read;
    the evaluator increments it before ``evaluate`` is called.
    """

    rule_id: ClassVar[str]

    def reputation_key(self, policy_input: PolicyInput) -> str | None:
        return None

    @abstractmethod
    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        """Return the rule's verdict for this request. Must not mutate anything."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rule_id={self.rule_id!r})"
