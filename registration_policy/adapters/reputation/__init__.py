"""Requester reputation stores.

Rules never touch these directly: the evaluator calls the single
increment-and-check operation and hands rules an immutable snapshot.
An in-memory store covers a single process; the Redis store shares
counters across workers.
"""

from registration_policy.adapters.reputation.base import AbstractReputationTracker
from registration_policy.adapters.reputation.factory import create_reputation_tracker
from registration_policy.adapters.reputation.in_memory import InMemoryReputationTracker
from registration_policy.adapters.reputation.redis_store import RedisReputationTracker

__all__ = [
    "AbstractReputationTracker",
    "InMemoryReputationTracker",
    "RedisReputationTracker",
    "create_reputation_tracker",
]
