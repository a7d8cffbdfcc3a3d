"""Redis-backed job queue store.

Keys follow the Bull layout under ``{prefix}:{queue}``::

    :id          counter that hands out job ids
    :{id}        hash with name, data, opts, timestamp and attempt bookkeeping
    :wait        list of waiting ids; LPUSH on enqueue, oldest at the tail
    :active      hash applicationId -> job id for claimed jobs
    :completed   counter of jobs reported as applied
    :failed      sorted set of failed job ids scored by finish time

Every call may raise ``redis.exceptions.ConnectionError`` or
``redis.exceptions.TimeoutError`` when the broker is unreachable; callers
decide how to degrade.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from redis import asyncio as aioredis

from app.config import Settings

logger = logging.getLogger(__name__)


class QueueTimeoutError(Exception):
    """Broker did not answer within the allotted time."""


@dataclass
class JobOptions:
    """Per-job policy stored alongside the payload."""
    attempts: int = 3
    backoff_type: str = "exponential"
    backoff_delay_ms: int = 2000
    remove_on_complete: bool = True
    remove_on_fail: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempts": self.attempts,
            "backoff": {"type": self.backoff_type, "delay": self.backoff_delay_ms},
            "removeOnComplete": self.remove_on_complete,
            "removeOnFail": self.remove_on_fail,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "JobOptions":
        backoff = raw.get("backoff") or {}
        return cls(
            attempts=int(raw.get("attempts", 3)),
            backoff_type=backoff.get("type", "exponential"),
            backoff_delay_ms=int(backoff.get("delay", 2000)),
            remove_on_complete=bool(raw.get("removeOnComplete", True)),
            remove_on_fail=bool(raw.get("removeOnFail", False)),
        )


@dataclass
class QueuedJob:
    """A job as stored in the broker."""
    id: str
    name: str
    data: Dict[str, Any]
    options: JobOptions = field(default_factory=JobOptions)
    timestamp: int = 0


@dataclass
class QueueCounts:
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "waiting": self.waiting,
            "active": self.active,
            "completed": self.completed,
            "failed": self.failed,
        }


def create_redis_client(settings: Settings) -> aioredis.Redis:
    """Build the asyncio Redis client for the queue broker."""
    return aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        db=settings.redis_db,
        socket_connect_timeout=settings.redis_connect_timeout,
        socket_timeout=settings.redis_connect_timeout,
        decode_responses=True,
    )


class JobQueueStore:
    """Ordered, broker-backed mapping from job id to job payload."""

    def __init__(self, redis: aioredis.Redis, queue_name: str = "application",
                 prefix: str = "bull"):
        self.redis = redis
        self.queue_name = queue_name
        self.base = f"{prefix}:{queue_name}"

    def _key(self, suffix: str) -> str:
        return f"{self.base}:{suffix}"

    async def enqueue(self, name: str, data: Dict[str, Any],
                      options: Optional[JobOptions] = None) -> QueuedJob:
        """Append a job to the waiting list."""
        options = options or JobOptions()
        job_id = str(await self.redis.incr(self._key("id")))
        timestamp = int(time.time() * 1000)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._key(job_id), mapping={
                "name": name,
                "data": json.dumps(data),
                "opts": json.dumps(options.to_dict()),
                "timestamp": timestamp,
                "attemptsMade": 0,
            })
            pipe.lpush(self._key("wait"), job_id)
            await pipe.execute()

        logger.debug(f"Enqueued job {job_id} on {self.queue_name}")
        return QueuedJob(id=job_id, name=name, data=data, options=options, timestamp=timestamp)

    async def peek_oldest(self, count: int = 1, timeout: float = 3.0) -> List[QueuedJob]:
        """Return up to ``count`` oldest waiting jobs without removing them.

        Raises:
            QueueTimeoutError: the broker did not answer within ``timeout``
        """
        try:
            return await asyncio.wait_for(self._peek(count), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise QueueTimeoutError(f"Queue peek timed out after {timeout}s") from e

    async def _peek(self, count: int) -> List[QueuedJob]:
        if count < 1:
            return []

        while True:
            # Oldest ids sit at the tail of the list
            ids = await self.redis.lrange(self._key("wait"), -count, -1)
            ids.reverse()
            if not ids:
                return []

            async with self.redis.pipeline(transaction=False) as pipe:
                for job_id in ids:
                    pipe.hgetall(self._key(job_id))
                hashes = await pipe.execute()

            jobs, orphans = [], []
            for job_id, raw in zip(ids, hashes):
                if raw:
                    jobs.append(self._decode(job_id, raw))
                else:
                    orphans.append(job_id)
            if not orphans:
                return jobs

            # Ids without a payload can never be handed out; drop them and rescan
            for job_id in orphans:
                logger.warning(f"Dropping waiting job {job_id}: no payload")
                await self.redis.lrem(self._key("wait"), 0, job_id)

    @staticmethod
    def _decode(job_id: str, raw: Dict[str, str]) -> QueuedJob:
        return QueuedJob(
            id=job_id,
            name=raw.get("name", ""),
            data=json.loads(raw.get("data") or "{}"),
            options=JobOptions.from_dict(json.loads(raw.get("opts") or "{}")),
            timestamp=int(raw.get("timestamp") or 0),
        )

    async def remove(self, job: QueuedJob) -> bool:
        """Claim a waiting job by taking it off the waiting list.

        Returns False when the job was no longer waiting.
        """
        removed = await self.redis.lrem(self._key("wait"), 1, job.id)
        if not removed:
            return False

        application_id = job.data.get("applicationId")
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._key(job.id), "processedOn", int(time.time() * 1000))
            if application_id:
                pipe.hset(self._key("active"), application_id, job.id)
            await pipe.execute()
        return True

    async def release(self, job: QueuedJob):
        """Undo a claim, putting the job back as the oldest waiting entry."""
        application_id = job.data.get("applicationId")
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.rpush(self._key("wait"), job.id)
            pipe.hdel(self._key(job.id), "processedOn")
            if application_id:
                pipe.hdel(self._key("active"), application_id)
            await pipe.execute()

    async def finish(self, application_id: str, succeeded: bool,
                     reason: Optional[str] = None) -> bool:
        """Record the outcome of a claimed job.

        Successful jobs bump the completed counter and drop their payload when
        ``removeOnComplete`` is set; failed ones are kept in the failed set.
        Returns False when no claimed job is recorded for the application.
        """
        job_id = await self.redis.hget(self._key("active"), application_id)
        if not job_id:
            return False

        opts_raw = await self.redis.hget(self._key(job_id), "opts")
        options = JobOptions.from_dict(json.loads(opts_raw or "{}"))
        finished_on = int(time.time() * 1000)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hdel(self._key("active"), application_id)
            if succeeded:
                pipe.incr(self._key("completed"))
                if options.remove_on_complete:
                    pipe.delete(self._key(job_id))
                else:
                    pipe.hset(self._key(job_id), "finishedOn", finished_on)
            else:
                pipe.zadd(self._key("failed"), {job_id: finished_on})
                if options.remove_on_fail:
                    pipe.delete(self._key(job_id))
                else:
                    pipe.hset(self._key(job_id), mapping={
                        "finishedOn": finished_on,
                        "failedReason": reason or "",
                    })
            await pipe.execute()
        return True

    async def counts(self) -> QueueCounts:
        """Number of jobs in each state."""
        async with self.redis.pipeline(transaction=False) as pipe:
            pipe.llen(self._key("wait"))
            pipe.hlen(self._key("active"))
            pipe.get(self._key("completed"))
            pipe.zcard(self._key("failed"))
            waiting, active, completed, failed = await pipe.execute()

        return QueueCounts(
            waiting=int(waiting or 0),
            active=int(active or 0),
            completed=int(completed or 0),
            failed=int(failed or 0),
        )

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def close(self):
        await self.redis.aclose()
