"""Rules over the submitted client metadata.

``client_metadata`` is an open map, so every rule looks its keys up
explicitly and treats a value of the wrong type as a finding, not a crash.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Any, Iterable
from urllib.parse import SplitResult, urlsplit

from registration_policy.services.normalizer import PolicyInput
from registration_policy.services.rules.base import ReputationSnapshot, Rule, RuleResult

# RFC 7591 §2: grant_types defaults to authorization_code when omitted
DEFAULT_GRANT_TYPES = ("authorization_code",)
REDIRECT_GRANT_TYPES = frozenset({"authorization_code", "implicit"})

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _string_list(value: Any) -> list[str] | None:
    """Return ``value`` as a list when it is an array of strings, else None."""
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    return None


def _is_loopback_host(host: str | None) -> bool:
    if not host:
        return False
    if host.lower() == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _split(uri: str) -> SplitResult | None:
    try:
        return urlsplit(uri)
    except ValueError:
        return None


def _https_host(value: Any) -> str | None:
    """Host of an absolute https URI, or None when ``value`` is not one."""
    if not isinstance(value, str):
        return None
    parts = _split(value)
    if parts is None or parts.scheme.lower() != "https":
        return None
    try:
        return parts.hostname
    except ValueError:
        return None


class RedirectUriSchemeRule(Rule):
    """Redirect URIs must use https or an allowed custom (native app) scheme."""

    rule_id = "redirect_uri_scheme"

    def __init__(
        self,
        *,
        allowed_custom_schemes: Iterable[str] = (),
        allow_loopback_http: bool = True,
    ) -> None:
        self.allowed_custom_schemes = frozenset(s.lower() for s in allowed_custom_schemes)
        self.allow_loopback_http = allow_loopback_http

    def _requires_redirects(self, policy_input: PolicyInput) -> bool:
        grant_types = _string_list(policy_input.metadata_value("grant_types"))
        if grant_types is None:
            grant_types = list(DEFAULT_GRANT_TYPES)
        return bool(REDIRECT_GRANT_TYPES.intersection(grant_types))

    def _check_uri(self, uri: str) -> str | None:
        """Return a problem description for ``uri``, or None when acceptable."""
        parts = _split(uri)
        if parts is None or not parts.scheme:
            return f"redirect URI '{uri}' is not an absolute URI"
        if parts.fragment:
            return f"redirect URI '{uri}' must not contain a fragment"

        scheme = parts.scheme.lower()
        if scheme == "https":
            if not parts.netloc:
                return f"redirect URI '{uri}' has no host"
            return None
        if scheme == "http":
            try:
                host = parts.hostname
            except ValueError:
                host = None
            if self.allow_loopback_http and _is_loopback_host(host):
                return None
            return f"redirect URI '{uri}' uses http on a non-loopback host"
        if scheme in self.allowed_custom_schemes:
            return None
        return f"redirect URI '{uri}' must use https or an allowed custom scheme"

    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        raw = policy_input.metadata_value("redirect_uris")
        if raw is None:
            if self._requires_redirects(policy_input):
                return RuleResult.reject(
                    "redirect_uris is required for redirect-based grant types", fatal=True
                )
            return RuleResult.passed()

        uris = _string_list(raw)
        if uris is None:
            return RuleResult.reject("redirect_uris must be a list of strings", fatal=True)
        if not uris and self._requires_redirects(policy_input):
            return RuleResult.reject("redirect_uris must not be empty", fatal=True)

        for uri in uris:
            problem = self._check_uri(uri)
            if problem:
                return RuleResult.reject(problem, fatal=True)
        return RuleResult.passed()


class GrantTypesRule(Rule):
    """Registered grant types must come from the allowed set."""

    rule_id = "grant_types"

    def __init__(self, *, allowed_grant_types: Iterable[str]) -> None:
        self.allowed_grant_types = tuple(allowed_grant_types)

    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        raw = policy_input.metadata_value("grant_types")
        if raw is None:
            return RuleResult.passed()

        grant_types = _string_list(raw)
        if grant_types is None:
            return RuleResult.reject("grant_types must be a list of strings", fatal=True)

        disallowed = [g for g in grant_types if g not in self.allowed_grant_types]
        if disallowed:
            return RuleResult.reject(
                "grant types not allowed: " + ", ".join(sorted(set(disallowed))),
                fatal=True,
            )
        return RuleResult.passed()


class MetadataUrisRule(Rule):
    """Informational URIs must be https and should live on the client_uri host."""

    rule_id = "metadata_uris"

    uri_fields = ("client_uri", "logo_uri", "policy_uri", "tos_uri")

    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        hosts: dict[str, str] = {}
        invalid: list[str] = []
        for name in self.uri_fields:
            value = policy_input.metadata_value(name)
            if value is None:
                continue
            host = _https_host(value)
            if host is None:
                invalid.append(name)
            else:
                hosts[name] = host.lower()

        if invalid:
            return RuleResult.reject(
                "must be absolute https URIs: " + ", ".join(invalid), fatal=True
            )

        client_host = hosts.get("client_uri")
        if client_host is None:
            return RuleResult.passed()

        mismatched = [
            name for name, host in hosts.items() if name != "client_uri" and host != client_host
        ]
        if mismatched:
            return RuleResult.warn(
                "not hosted on the client_uri host "
                f"'{client_host}': " + ", ".join(mismatched)
            )
        return RuleResult.passed()


class ClientNameLengthRule(Rule):
    """client_name, when given, must be a non-blank string within the length bound."""

    rule_id = "client_name_length"

    def __init__(self, *, max_length: int = 255) -> None:
        self.max_length = max_length

    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        name = policy_input.metadata_value("client_name")
        if name is None:
            return RuleResult.passed()
        if not isinstance(name, str):
            return RuleResult.reject("client_name must be a string")
        if not name.strip():
            return RuleResult.reject("client_name must not be blank")
        if len(name) > self.max_length:
            return RuleResult.reject(
                f"client_name is {len(name)} characters long; the limit is {self.max_length}"
            )
        return RuleResult.passed()


class ContactsRule(Rule):
    """contacts, when given, must be a list of e-mail addresses."""

    rule_id = "contacts"

    def evaluate(self, policy_input: PolicyInput, snapshot: ReputationSnapshot) -> RuleResult:
        raw = policy_input.metadata_value("contacts")
        if raw is None:
            return RuleResult.passed()

        contacts = _string_list(raw)
        if contacts is None:
            return RuleResult.reject("contacts must be a list of strings")

        bad = sum(1 for contact in contacts if not _EMAIL_RE.match(contact))
        if bad:
            return RuleResult.reject(f"contacts has {bad} entries that are not e-mail addresses")
        return RuleResult.passed()
