"""Input normalization for registration policy requests.

Turns the raw JSON payload into an immutable ``PolicyInput``. Only the
structure required by the contract is enforced here; the content of
``client_metadata`` is left to the rules, which look keys up explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError

from registration_policy.core.errors import InputError
from registration_policy.schemas.policy import RegistrationRequestSchema


@dataclass(frozen=True)
class Requester:
    """Requester context. ``None`` means unknown, never malformed."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class PolicyInput:
    """Canonical, read-only view of a registration request."""

    client_metadata: Mapping[str, Any]
    requester: Requester

    def metadata_value(self, key: str, default: Any = None) -> Any:
        return self.client_metadata.get(key, default)


def _freeze(value: Any) -> Any:
    """Return a read-only copy of a decoded JSON value.

    Objects become ``MappingProxyType`` views and arrays become tuples, at
    every depth.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _describe_error(exc: ValidationError) -> tuple[str, str, str]:
    """Return (code, message, field) for the first validation failure."""

    first = exc.errors()[0]
    loc = [str(part) for part in first.get("loc", ())]
    field = ".".join(loc) or "body"
    error_type = first.get("type", "")

    if error_type == "missing":
        return "missing_field", f"Required field '{field}' is missing", field
    if loc == ["requester", "ip_address"] and error_type == "value_error":
        return (
            "invalid_ip_address",
            "requester.ip_address must be an IPv4 or IPv6 literal",
            field,
        )
    return "invalid_field", f"Field '{field}' is invalid: {first.get('msg', 'invalid value')}", field


def normalize_request(raw: Any) -> PolicyInput:
    """Validate a raw request and build the canonical ``PolicyInput``.

    Args:
        raw: Decoded JSON request body.

    Returns:
        PolicyInput with every ``client_metadata`` key retained verbatim and
        ``ip_address`` in canonical (compressed) form.

    Raises:
        InputError: If the request does not match the input contract.
    """
    if not isinstance(raw, Mapping):
        raise InputError(
            code="invalid_request",
            message="Request body must be a JSON object",
            details={"value_type": type(raw).__name__},
        )

    try:
        parsed = RegistrationRequestSchema.model_validate(dict(raw))
    except ValidationError as exc:
        code, message, field = _describe_error(exc)
        raise InputError(code=code, message=message, details={"field": field}) from exc

    return PolicyInput(
        client_metadata=_freeze(parsed.client_metadata),
        requester=Requester(
            ip_address=parsed.requester.ip_address,
            user_agent=parsed.requester.user_agent,
        ),
    )
