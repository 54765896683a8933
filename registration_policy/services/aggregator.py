"""Reduction of rule outcomes into a single decision."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterable

from registration_policy.services.evaluator import RuleOutcome
from registration_policy.services.rules.base import Outcome


class Verdict(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    FLAG = "flag"


@dataclass(frozen=True)
class Diagnostic:
    rule: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"rule": self.rule, "message": self.message}


@dataclass(frozen=True)
class Decision:
    """Final policy outcome with diagnostics in rule registration order."""

    verdict: Verdict
    violations: tuple[Diagnostic, ...] = ()
    warnings: tuple[Diagnostic, ...] = ()

    @property
    def admitted(self) -> bool:
        return self.verdict is not Verdict.DENY

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "violations": [d.to_dict() for d in self.violations],
            "warnings": [d.to_dict() for d in self.warnings],
        }


def aggregate(outcomes: Iterable[RuleOutcome]) -> Decision:
    """Reduce rule outcomes to a decision.

    - any fatal reject: ``deny``; violations are all reject messages, fatal or
      not, and warnings are the warn messages
    - otherwise any non-fatal reject or warn: ``flag``; those messages become
      warnings and violations stay empty
    - otherwise ``allow`` with no diagnostics
    """
    rejects: list[Diagnostic] = []
    warns: list[Diagnostic] = []
    soft: list[Diagnostic] = []
    fatal = False

    for outcome in outcomes:
        result = outcome.result
        if result.outcome is Outcome.PASS:
            continue
        diagnostic = Diagnostic(rule=outcome.rule_id, message=result.reason or result.outcome.value)
        if result.outcome is Outcome.REJECT:
            rejects.append(diagnostic)
            fatal = fatal or result.fatal
            if not result.fatal:
                soft.append(diagnostic)
        else:
            warns.append(diagnostic)
            soft.append(diagnostic)

    if fatal:
        return Decision(Verdict.DENY, violations=tuple(rejects), warnings=tuple(warns))
    if soft:
        return Decision(Verdict.FLAG, warnings=tuple(soft))
    return Decision(Verdict.ALLOW)
