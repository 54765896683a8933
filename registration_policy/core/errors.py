"""Application-level exception types.

Policy verdicts (allow, flag, deny) are normal outcomes and never raised.
These errors cover everything that prevents a verdict from being reached.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    field: str
    value_type: str
    rule: str
    dependency: str
    failure_mode: str
    timeout_s: float
    http_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class InputError(ValidationAppError):
    """Raised when a registration request is structurally invalid.

    Raised before any rule runs; it is never a policy decision.
    """


class RuleEvaluationError(AppError):
    """Raised when a rule cannot be evaluated because a dependency failed."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""
