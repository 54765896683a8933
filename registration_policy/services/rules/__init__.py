"""Registration policy rules.

The rule set is assembled once at startup, in a fixed order. Order only
decides how diagnostics are listed; it never changes the verdict.
"""

from __future__ import annotations

from registration_policy.core.config import PolicySettings, settings, split_csv
from registration_policy.services.rules.base import (
    Outcome,
    ReputationSnapshot,
    Rule,
    RuleResult,
)
from registration_policy.services.rules.registration import (
    ClientNameLengthRule,
    ContactsRule,
    GrantTypesRule,
    MetadataUrisRule,
    RedirectUriSchemeRule,
)
from registration_policy.services.rules.requester import (
    RequesterRateLimitRule,
    UserAgentPatternRule,
)

__all__ = [
    "ClientNameLengthRule",
    "ContactsRule",
    "GrantTypesRule",
    "MetadataUrisRule",
    "Outcome",
    "RedirectUriSchemeRule",
    "ReputationSnapshot",
    "RequesterRateLimitRule",
    "Rule",
    "RuleResult",
    "UserAgentPatternRule",
    "build_default_rules",
]


def build_default_rules(policy_settings: PolicySettings | None = None) -> list[Rule]:
    """Build the standard rule set from configuration."""

    cfg = policy_settings or settings.policy
    return [
        RedirectUriSchemeRule(
            allowed_custom_schemes=split_csv(cfg.allowed_custom_schemes),
            allow_loopback_http=cfg.allow_loopback_http_redirects,
        ),
        GrantTypesRule(allowed_grant_types=split_csv(cfg.allowed_grant_types)),
        MetadataUrisRule(),
        ClientNameLengthRule(max_length=cfg.client_name_max_length),
        ContactsRule(),
        UserAgentPatternRule(patterns=split_csv(cfg.blocked_user_agent_patterns)),
        RequesterRateLimitRule(
            threshold=cfg.rate_limit_threshold,
            key_strategy=cfg.rate_limit_key_strategy,
        ),
    ]
