"""Reputation tracker interface.

Rule evaluation depends on this abstraction, not on a concrete store, so the
in-memory tracker can be replaced by a shared one (Redis) per deployment.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractReputationTracker(ABC):
    """Per-key attempt counters over a short window.

    Attributes:
        window_seconds: Length of the counting window. A key's window starts at
            its first attempt; once it has elapsed, the next attempt starts a
            fresh window.
    """

    window_seconds: int

    @abstractmethod
    async def increment_and_check(self, key: str, now: float) -> int:
        """Record one attempt for ``key`` and return the count in its window.

        The increment and the read happen atomically: concurrent callers on the
        same key never lose an increment.

        Args:
            key: Requester identity (e.g. ``"requester_rate_limit:ip:203.0.113.5"``).
            now: Current UNIX time in seconds.

        Returns:
            Number of attempts recorded for ``key`` in the current window,
            including this one.
        """
        raise NotImplementedError

    async def sweep(self, now: float) -> int:
        """Drop entries whose window has elapsed.

        Stores with native expiry have nothing to do here.

        Returns:
            Number of entries removed.
        """
        return 0

    async def close(self) -> None:
        """Release connections held by the store."""
        return None

    @property
    def backend_name(self) -> str:
        return type(self).__name__
