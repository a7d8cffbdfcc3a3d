"""Polling worker: claims jobs from the origin, applies, reports back.

One job is processed at a time. The poll timer keeps firing while a job is
in flight, but those ticks are skipped rather than queued.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from app.services.retry_service import NonRetryableError, RetryError, RetryPolicy, RetryStrategy, retry_with_backoff
from automation.client import (
    EndpointNotFoundError,
    OriginClient,
    OriginError,
    PollTimeoutError,
)
from automation.config import WorkerSettings
from automation.models import ApplyJob, CompletionReport
from automation.platforms.base import UnsupportedPlatformError
from automation.platforms.registry import PlatformRegistry

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    STARTING = "STARTING"
    POLLING = "POLLING"
    PROCESSING = "PROCESSING"
    STOPPED = "STOPPED"


@dataclass
class WorkerSession:
    """Counters for one worker run."""
    consecutive_timeouts: int = 0
    consecutive_not_found: int = 0
    seen_success: bool = False
    processed: int = 0
    failed: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stop_reason: Optional[str] = None

    def record_poll_success(self) -> None:
        self.seen_success = True
        self.consecutive_timeouts = 0
        self.consecutive_not_found = 0


class Worker:
    """Polls ``GET /queue/jobs/next`` on a fixed interval and runs platform automations."""

    def __init__(self,
                 client: OriginClient,
                 registry: PlatformRegistry,
                 settings: Optional[WorkerSettings] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.client = client
        self.registry = registry
        self.settings = settings or WorkerSettings()
        self.session = WorkerSession()
        self.state = WorkerState.STARTING
        self.fatal = False
        self._sleep = sleep
        self._busy = False
        self._timer: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()
        self.retry_policy = RetryPolicy(
            max_attempts=self.settings.max_retries,
            strategy=RetryStrategy.FIXED_DELAY,
            base_delay=self.settings.retry_delay,
        )

    @property
    def stopped(self) -> bool:
        return self.state == WorkerState.STOPPED

    @property
    def busy(self) -> bool:
        return self._busy

    async def start(self) -> None:
        """Probe the origin once, then start the poll timer."""
        if self.state != WorkerState.STARTING:
            return
        logger.info(
            f"Automation worker starting: origin={self.settings.api_url}, "
            f"poll_interval={self.settings.poll_interval}s, platforms={self.registry.platforms}"
        )
        self.state = WorkerState.POLLING
        self._current = asyncio.create_task(self._probe())
        self._timer = asyncio.create_task(self._run_timer())

    async def _probe(self) -> None:
        # The probe is a real poll; a job it returns is processed like any other
        self._busy = True
        try:
            try:
                payload = await self.client.fetch_next_job()
            except OriginError as e:
                logger.warning(f"Origin not reachable at {self.settings.api_url}: {e}. Polling starts anyway")
                return
            logger.info(f"Origin reachable at {self.settings.api_url}")
            self.session.record_poll_success()
            if payload:
                await self.process_job(payload)
        finally:
            self._busy = False

    async def _run_timer(self) -> None:
        while not self.stopped:
            await asyncio.sleep(self.settings.poll_interval)
            if self.stopped:
                break
            if self._busy:
                logger.debug("Previous job still processing, skipping poll")
                continue
            self._current = asyncio.create_task(self.tick())

    async def tick(self) -> None:
        """Run one poll cycle unless stopped or a job is in flight."""
        if self.stopped:
            return
        if self._busy:
            logger.debug("Previous job still processing, skipping poll")
            return

        self._busy = True
        try:
            await self._poll()
        finally:
            self._busy = False

    async def _poll(self) -> None:
        try:
            payload = await self.client.fetch_next_job()
        except PollTimeoutError as e:
            self.session.consecutive_timeouts += 1
            limit = self.settings.max_consecutive_timeouts
            logger.warning(f"Poll timed out ({self.session.consecutive_timeouts}/{limit}): {e}")
            if self.session.consecutive_timeouts >= limit:
                self.stop(f"{limit} consecutive poll timeouts", fatal=True)
            return
        except EndpointNotFoundError as e:
            if self.session.seen_success:
                logger.debug("Poll endpoint returned 404 after earlier success, treating as no job")
                payload = None
            else:
                self.session.consecutive_not_found += 1
                limit = self.settings.max_consecutive_not_found
                logger.warning(f"Poll endpoint not found ({self.session.consecutive_not_found}/{limit}): {e}")
                if self.session.consecutive_not_found >= limit:
                    self.stop(f"poll endpoint not found after {limit} attempts", fatal=True)
                return
        except OriginError as e:
            logger.error(f"Origin service unavailable: {e}")
            self.stop(f"origin unavailable: {e}", fatal=True)
            return

        self.session.record_poll_success()
        if not payload:
            logger.debug("No jobs available")
            return
        await self.process_job(payload)

    async def process_job(self, payload: Dict[str, Any]) -> Optional[CompletionReport]:
        """Apply to one claimed job and report the outcome.

        Returns the report that was sent, or None for a payload that could
        not be attributed to an application.
        """
        try:
            job = ApplyJob.model_validate(payload)
        except ValidationError as e:
            self.session.failed += 1
            logger.error(f"Discarding malformed job payload {payload!r}: {e}")
            application_id = payload.get("applicationId") if isinstance(payload, dict) else None
            if not application_id:
                return None
            report = CompletionReport.failed(f"Malformed job payload: {e}")
            await self._report(str(application_id), report)
            return report

        if not self.stopped:
            self.state = WorkerState.PROCESSING
        logger.info(f"Processing job {job.id}: application={job.application_id}, jobId={job.job_id}, "
                    f"platform={job.platform}",
                    extra={"component": "worker", "application_id": job.application_id, "queue_job_id": job.id})
        try:
            report = await self._apply(job)
        finally:
            if not self.stopped:
                self.state = WorkerState.POLLING

        self.session.processed += 1
        if not report.succeeded:
            self.session.failed += 1
        await self._report(job.application_id, report)
        return report

    async def _apply(self, job: ApplyJob) -> CompletionReport:
        try:
            automation = self.registry.get(job.platform)
        except UnsupportedPlatformError as e:
            logger.error(f"Application {job.application_id}: {e}")
            return CompletionReport.failed(str(e), attempts=0)

        attempts = 0

        async def attempt():
            nonlocal attempts
            attempts += 1
            return await automation.apply(job)

        try:
            result = await retry_with_backoff(
                attempt, self.retry_policy,
                operation=f"apply {job.application_id} on {job.platform}",
                sleep=self._sleep,
            )
        except RetryError as e:
            return CompletionReport.failed(str(e.last_error), attempts=e.attempts)
        except NonRetryableError as e:
            return CompletionReport.failed(str(e), attempts=attempts)

        logger.info(f"Application {job.application_id} submitted on attempt {attempts}")
        return CompletionReport.success(result.platform, result.applied_at, attempts=attempts)

    async def _report(self, application_id: str, report: CompletionReport) -> None:
        try:
            await self.client.report_completion(application_id, report.to_body())
        except OriginError as e:
            # The record stays PENDING; the job is not re-queued
            logger.error(f"Failed to report {report.status} for application {application_id}: {e}")
            return
        logger.info(f"Reported {report.status} for application {application_id}")

    def stop(self, reason: str = "stop requested", fatal: bool = False) -> bool:
        """Stop polling. Idempotent; an in-flight job runs to completion.

        Returns False when the worker was already stopped.
        """
        if self.stopped:
            return False
        self.state = WorkerState.STOPPED
        self.fatal = fatal
        self.session.stop_reason = reason
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        logger.info(
            f"Worker stopped ({reason}); processed {self.session.processed} jobs, "
            f"{self.session.failed} failed"
        )
        self._stopped.set()
        return True

    async def wait_stopped(self) -> None:
        """Wait for stop() and for the in-flight job, if any, to finish."""
        await self._stopped.wait()
        if self._current is not None and not self._current.done():
            await self._current
