from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request

from registration_policy.core.auth import verify_api_key
from registration_policy.core.errors import InputError
from registration_policy.schemas.policy import DecisionResponse, RegistrationRequestSchema
from registration_policy.services.policy_service import RegistrationPolicyService

router = APIRouter(tags=["Registration Policy"])

_EXAMPLE_REQUEST = {
    "client_metadata": {
        "client_name": "Example App",
        "redirect_uris": ["https://example.com/cb"],
    },
    "requester": {"ip_address": "203.0.113.5", "user_agent": "Mozilla/5.0"},
}

_REQUEST_BODY_DOC = {
    "requestBody": {
        "required": True,
        "description": "Registration request: {client_metadata: {...}, requester: {ip_address?, user_agent?}}",
        "content": {
            "application/json": {
                "schema": RegistrationRequestSchema.model_json_schema(),
                "example": _EXAMPLE_REQUEST,
            }
        },
    }
}


def get_policy_service(request: Request) -> RegistrationPolicyService:
    """Return the policy service built by the application factory."""
    return request.app.state.policy_service


async def read_json_body(request: Request) -> Any:
    """Decode the request body as JSON.

    The decoded value is passed on as-is; its shape is checked by the
    normalizer so every contract violation gets the same error envelope.

    Raises:
        InputError: If the body is empty or not valid JSON.
    """
    body = await request.body()
    if not body.strip():
        raise InputError(
            code="invalid_request",
            message="Request body must be a JSON object",
            details={"value_type": "empty"},
        )
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InputError(
            code="invalid_request",
            message="Request body is not valid JSON",
        ) from exc


@router.post(
    "/registration/evaluate",
    response_model=DecisionResponse,
    dependencies=[Depends(verify_api_key)],
    openapi_extra=_REQUEST_BODY_DOC,
)
async def evaluate_registration(
    payload: Any = Depends(read_json_body),
    service: RegistrationPolicyService = Depends(get_policy_service),
) -> DecisionResponse:
    """Decide whether a dynamic client registration attempt is admitted.

    Every verdict (allow, flag, deny) is returned with HTTP 200. A request
    that does not match the input contract is answered with 400 and the
    standard error envelope; no rule runs for it.
    """
    decision = await service.evaluate(payload)
    return DecisionResponse.model_validate(decision.to_dict())
