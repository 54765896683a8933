"""In-memory reputation tracker.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards all entries, so no increment is ever lost.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from registration_policy.adapters.reputation.base import AbstractReputationTracker


@dataclass
class _ReputationEntry:
    window_start: float
    count: int


class InMemoryReputationTracker(AbstractReputationTracker):
    """Counts attempts per key in a window that opens at the key's first attempt.

    Entries are reset lazily when accessed after their window elapsed; ``sweep``
    reclaims entries that are never accessed again.
    """

    def __init__(self, *, window_seconds: int, max_entries: int | None = 100_000) -> None:
        """Initialize the tracker.

        Args:
            window_seconds: Length of the counting window in seconds.
            max_entries: Soft cap on tracked keys; when exceeded, stale entries
                are swept inline before a new key is admitted.

        Raises:
            ValueError: If window_seconds is invalid.
        """
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self.window_seconds = window_seconds
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: dict[str, _ReputationEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_stale(self, entry: _ReputationEntry, now: float) -> bool:
        return now - entry.window_start >= self.window_seconds

    def _sweep_locked(self, now: float) -> int:
        stale = [key for key, entry in self._entries.items() if self._is_stale(entry, now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    async def increment_and_check(self, key: str, now: float) -> int:
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._is_stale(entry, now):
                if (
                    entry is None
                    and self._max_entries is not None
                    and len(self._entries) >= self._max_entries
                ):
                    self._sweep_locked(now)
                entry = _ReputationEntry(window_start=now, count=0)
                self._entries[key] = entry
            entry.count += 1
            return entry.count

    async def sweep(self, now: float) -> int:
        with self._lock:
            return self._sweep_locked(now)

    @property
    def backend_name(self) -> str:
        return "memory"
