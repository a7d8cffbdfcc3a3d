"""Broker-backed application job queue."""

from .store import (
    JobOptions,
    JobQueueStore,
    QueueCounts,
    QueuedJob,
    QueueTimeoutError,
    create_redis_client,
)

__all__ = [
    "JobOptions",
    "JobQueueStore",
    "QueueCounts",
    "QueuedJob",
    "QueueTimeoutError",
    "create_redis_client",
]
