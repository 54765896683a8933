"""Background reclamation of stale reputation entries."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Callable

from registration_policy.adapters.reputation.base import AbstractReputationTracker

logger = logging.getLogger(__name__)


class ReputationSweeper:
    """Periodically calls ``tracker.sweep`` from its own asyncio task.

    Evaluation never waits on the sweeper; a failed sweep is logged and the
    loop carries on.
    """

    def __init__(
        self,
        tracker: AbstractReputationTracker,
        *,
        interval_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._tracker = tracker
        self._interval = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop; a zero interval disables it."""
        if self._interval <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run(), name="reputation-sweeper")
        logger.info("reputation.sweeper_started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("reputation.sweeper_stopped")

    async def run_once(self) -> int:
        """Sweep once and return the number of entries removed."""
        try:
            removed = await self._tracker.sweep(self._clock())
        except Exception:
            logger.exception("reputation.sweep_failed")
            return 0
        if removed:
            logger.debug("reputation.sweep", extra={"removed": removed})
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()
