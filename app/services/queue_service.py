"""Application job lifecycle on top of the broker-backed queue store."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field
from redis.exceptions import RedisError

from app.config import Settings, settings as default_settings
from app.queue.store import JobOptions, JobQueueStore, QueueCounts, QueuedJob, QueueTimeoutError
from app.services.retry_service import RetryError, RetryPolicy, RetryStrategy, retry_with_backoff

logger = logging.getLogger(__name__)

# Faults that mean "the broker is unreachable or unresponsive"
BROKER_ERRORS = (RedisError, QueueTimeoutError, OSError, asyncio.TimeoutError)


class QueueUnavailableError(Exception):
    """The broker refused the job after every enqueue attempt."""


class ApplicationJob(BaseModel):
    """Queue payload handed to the automation worker."""
    model_config = ConfigDict(populate_by_name=True)

    application_id: str = Field(..., alias="applicationId")
    user_id: str = Field(..., alias="userId")
    job_id: str = Field(..., alias="jobId")
    resume_id: str = Field(..., alias="resumeId")
    platform: str
    job_url: str = Field(..., alias="jobUrl")
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class QueueService:
    """Owns enqueueing, claiming and reporting on application jobs."""

    def __init__(self, store: JobQueueStore, settings: Settings = default_settings,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.store = store
        self.settings = settings
        self._sleep = sleep
        self._last_outage_log: Optional[float] = None
        self._releases: Set[asyncio.Future] = set()

    def _job_options(self) -> JobOptions:
        return JobOptions(
            attempts=self.settings.queue_enqueue_attempts,
            backoff_type="exponential",
            backoff_delay_ms=int(self.settings.queue_backoff_delay * 1000),
            remove_on_complete=True,
            remove_on_fail=False,
        )

    def _log_outage(self, message: str):
        """Warn about broker outages at most once per configured interval."""
        now = time.monotonic()
        interval = self.settings.queue_error_log_interval
        if self._last_outage_log is None or now - self._last_outage_log >= interval:
            self._last_outage_log = now
            logger.warning(message)
        else:
            logger.debug(message)

    async def add_application_job(self, job: ApplicationJob) -> QueuedJob:
        """Enqueue a job, retrying broker writes with exponential backoff.

        Raises:
            QueueUnavailableError: every attempt failed to reach the broker
        """
        options = self._job_options()
        policy = RetryPolicy(
            max_attempts=options.attempts,
            strategy=RetryStrategy.EXPONENTIAL_BACKOFF,
            base_delay=self.settings.queue_backoff_delay,
            retry_on=BROKER_ERRORS,
        )
        payload = job.to_payload()

        try:
            queued = await retry_with_backoff(
                lambda: self.store.enqueue(self.settings.queue_job_name, payload, options),
                policy,
                operation=f"enqueue application {job.application_id}",
                sleep=self._sleep,
            )
        except RetryError as e:
            raise QueueUnavailableError(
                f"Could not enqueue application {job.application_id}: {e.last_error}"
            ) from e
        except BROKER_ERRORS as e:
            raise QueueUnavailableError(
                f"Could not enqueue application {job.application_id}: {e}"
            ) from e

        logger.info(
            f"Queued application {job.application_id} as job {queued.id} "
            f"(platform={job.platform})",
            extra={"component": "queue", "application_id": job.application_id, "queue_job_id": queued.id},
        )
        return queued

    async def get_next_job(self) -> Optional[Dict[str, Any]]:
        """Claim the oldest waiting job.

        Returns the job payload with the broker job id under ``id``, or None
        when nothing is waiting or the broker cannot be reached.
        """
        try:
            entries = await self.store.peek_oldest(1, timeout=self.settings.queue_peek_timeout)
        except BROKER_ERRORS as e:
            self._log_outage(f"Queue broker unavailable, reporting no job: {e}")
            return None

        if not entries:
            return None

        entry = entries[0]
        # A started claim always runs to the end, even if the poll is cancelled
        claim = asyncio.ensure_future(self._claim(entry))
        try:
            claimed = await asyncio.shield(claim)
        except asyncio.CancelledError:
            release = asyncio.ensure_future(self._release_abandoned(entry, claim))
            self._releases.add(release)
            release.add_done_callback(self._releases.discard)
            raise

        if claimed is False:
            logger.debug(f"Job {entry.id} was claimed by another poll")
            return None
        return {**entry.data, "id": entry.id}

    async def _claim(self, entry: QueuedJob) -> Optional[bool]:
        """Take the job off the waiting list.

        Returns None when the broker failed mid-claim; the job is then still
        handed out and stays waiting, so it may be delivered twice.
        """
        try:
            return await self.store.remove(entry)
        except BROKER_ERRORS as e:
            logger.warning(f"Failed to remove job {entry.id} from queue after peek: {e}")
            return None

    async def _release_abandoned(self, entry: QueuedJob, claim: asyncio.Future):
        """Requeue a job whose claim completed after the poll gave up.

        A claim that failed mid-way is requeued too; it may have removed the id.
        """
        if await claim is False:
            return
        try:
            await self.store.release(entry)
        except BROKER_ERRORS as e:
            logger.error(
                f"Job {entry.id} was claimed by an abandoned poll and could not be requeued: {e}",
                extra={"component": "queue", "application_id": entry.data.get("applicationId"),
                       "queue_job_id": entry.id},
            )
            return
        logger.warning(f"Requeued job {entry.id} claimed by an abandoned poll")

    async def wait_released(self):
        """Wait for requeues of abandoned claims still in flight."""
        if self._releases:
            await asyncio.gather(*self._releases, return_exceptions=True)

    async def get_queue_stats(self) -> QueueCounts:
        """Queue counts, all zero when the broker is unreachable."""
        try:
            return await asyncio.wait_for(
                self.store.counts(), timeout=self.settings.queue_peek_timeout
            )
        except BROKER_ERRORS as e:
            self._log_outage(f"Queue broker unavailable, reporting empty stats: {e}")
            return QueueCounts()

    async def acknowledge(self, application_id: str, succeeded: bool,
                          reason: Optional[str] = None) -> bool:
        """Record a claimed job's outcome. Never raises for broker faults."""
        try:
            return await asyncio.wait_for(
                self.store.finish(application_id, succeeded, reason),
                timeout=self.settings.queue_peek_timeout,
            )
        except BROKER_ERRORS as e:
            self._log_outage(f"Could not record queue outcome for {application_id}: {e}")
            return False

    async def health(self) -> Dict[str, Any]:
        """Broker connectivity report for the health endpoint."""
        redis_config = self.settings.redis_address
        try:
            await asyncio.wait_for(self.store.ping(), timeout=self.settings.queue_peek_timeout)
            stats = await asyncio.wait_for(
                self.store.counts(), timeout=self.settings.queue_peek_timeout
            )
        except BROKER_ERRORS as e:
            logger.error(f"Queue health check failed: {e}")
            host, port = self.settings.redis_host, self.settings.redis_port
            return {
                "status": "error",
                "redis": "disconnected",
                "redisConfig": redis_config,
                "message": f"Redis is not accessible at {redis_config}",
                "error": str(e) or type(e).__name__,
                "troubleshooting": [
                    "1. Check if Redis is running: docker ps | grep redis",
                    "2. Start Redis: docker-compose up -d redis",
                    f"3. Verify Redis connection: redis-cli -h {host} -p {port} ping",
                    "4. Check firewall/network if using remote Redis",
                    "5. Update REDIS_HOST and REDIS_PORT in .env if needed",
                ],
            }

        return {
            "status": "ok",
            "redis": "connected",
            "redisConfig": redis_config,
            "queueStats": stats.to_dict(),
        }
