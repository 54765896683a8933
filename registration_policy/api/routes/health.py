from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check used by load balancers and monitoring.

    Also reports which reputation backend and failure mode are active, so a
    deployment running fail-open is visible at a glance.
    """
    service = request.app.state.policy_service
    tracker = request.app.state.reputation_tracker
    return {
        "status": "ok",
        "reputation_backend": tracker.backend_name,
        "failure_mode": service.evaluator.failure_mode,
        "rules": [rule.rule_id for rule in service.evaluator.rules],
    }
