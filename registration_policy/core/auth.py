"""Service-to-service API key authentication.

The policy endpoint is called by the authorization server, not by end users.
Callers identify themselves with a shared key in the ``X-API-Key`` header;
keys are configured as a comma-separated list in ``APP_API_KEYS``.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header

from registration_policy.core.config import settings, split_csv
from registration_policy.core.errors import AuthenticationAppError
from registration_policy.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ") == {"key1", "key2", "key3"}
        True
        >>> parse_api_keys(None)
        set()
    """
    return set(split_csv(keys_string))


def validate_api_key(provided_key: str | None) -> None:
    """Validate a caller key against the configured keys.

    Raises:
        AuthenticationAppError: If the key is missing or unknown, or if auth is
            required but no keys are configured.
    """
    if not settings.app.api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.api_keys)
    if not valid_keys:
        logger.error(
            "auth.failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if not provided_key:
        logger.warning("auth.failed", extra={"reason": "missing_api_key"})
        raise AuthenticationAppError(
            code="missing_api_key",
            message="Missing API key. Provide X-API-Key header.",
        )

    # Compare against every key so timing doesn't reveal which prefix matched
    matched = False
    for key in valid_keys:
        if hmac.compare_digest(key.encode(), provided_key.encode()):
            matched = True

    if not matched:
        logger.warning(
            "auth.failed",
            extra={"reason": "invalid_api_key", "api_key_hash": hash_identifier(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency enforcing the caller API key.

    Usage:
        @router.post("/protected", dependencies=[Depends(verify_api_key)])
    """
    validate_api_key(x_api_key)
    if settings.app.api_key_required:
        logger.debug(
            "auth.success",
            extra={"api_key_hash": hash_identifier(x_api_key or "")},
        )
