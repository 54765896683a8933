"""Pydantic schemas for the registration policy request and response contracts."""

from __future__ import annotations

import ipaddress
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class RequesterSchema(BaseModel):
    """Ambient context about who is attempting the registration."""

    model_config = ConfigDict(extra="ignore")

    ip_address: StrictStr | None = Field(
        None,
        description="IPv4 or IPv6 literal of the registering client, if known.",
    )
    user_agent: StrictStr | None = Field(
        None,
        description="User-Agent header of the registration request, if known.",
    )

    @field_validator("ip_address")
    @classmethod
    def _check_ip_literal(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if "%" in value:
            raise ValueError("scoped IPv6 addresses are not accepted")
        return str(ipaddress.ip_address(value))


class RegistrationRequestSchema(BaseModel):
    """Input contract: both top-level keys are required, their contents are open."""

    model_config = ConfigDict(extra="ignore")

    client_metadata: dict[str, Any] = Field(
        ...,
        description="Client metadata submitted for dynamic registration (any keys).",
    )
    requester: RequesterSchema = Field(
        ...,
        description="Requester context; may be an empty object.",
    )


class DiagnosticItem(BaseModel):
    """A single rule message attached to a decision."""

    rule: str = Field(..., description="Identifier of the rule that produced the message.")
    message: str = Field(..., description="Human-readable explanation.")


class DecisionResponse(BaseModel):
    """Outcome of evaluating a registration request against the policy."""

    verdict: Literal["allow", "deny", "flag"] = Field(
        ...,
        description="allow: admitted; flag: admitted but marked for audit; deny: refused.",
    )
    violations: list[DiagnosticItem] = Field(
        default_factory=list,
        description="Reject messages, in rule registration order (populated on deny).",
    )
    warnings: list[DiagnosticItem] = Field(
        default_factory=list,
        description="Warn messages and non-fatal rejects, in rule registration order.",
    )
