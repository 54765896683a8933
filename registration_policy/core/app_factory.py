"""Application factory for the FastAPI app.

Builds the reputation tracker and policy service once per app, registers
middleware, handlers and routers, and ties the background sweeper and the
tracker's connections to the app lifespan.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from registration_policy.adapters.reputation import (
    AbstractReputationTracker,
    create_reputation_tracker,
)
from registration_policy.api.routes import health_router, policy_router
from registration_policy.core.config import settings
from registration_policy.core.exception_handlers import setup_exception_handlers
from registration_policy.core.logging import configure_logging
from registration_policy.core.middleware import request_id_middleware
from registration_policy.services.policy_service import create_policy_service
from registration_policy.services.sweeper import ReputationSweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    sweeper: ReputationSweeper = app.state.reputation_sweeper
    sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()
        await app.state.reputation_tracker.close()


def create_app(tracker: AbstractReputationTracker | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        tracker: Reputation tracker to use; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    tracker = tracker or create_reputation_tracker(
        timeout_seconds=settings.policy.evaluation_timeout_seconds
    )

    app = FastAPI(
        title="Client Registration Policy API",
        description=(
            "Decides whether a dynamic OAuth/OIDC client registration attempt is "
            "admitted (allow), admitted for audit (flag) or refused (deny), based "
            "on the submitted client metadata and the requester's IP address and "
            "user agent."
        ),
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.state.reputation_tracker = tracker
    app.state.policy_service = create_policy_service(tracker)
    app.state.reputation_sweeper = ReputationSweeper(
        tracker,
        interval_seconds=settings.reputation.sweep_interval_seconds,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(policy_router, prefix="/v1")
    app.include_router(health_router)

    logger.info(
        "app.configured",
        extra={
            "app_env": settings.app_env,
            "reputation_backend": tracker.backend_name,
            "failure_mode": settings.policy.failure_mode,
        },
    )
    return app
