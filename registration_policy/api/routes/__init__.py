from __future__ import annotations

from registration_policy.api.routes.health import router as health_router
from registration_policy.api.routes.policy import router as policy_router

__all__ = ["health_router", "policy_router"]
