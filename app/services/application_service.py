"""Application record lifecycle: creation, completion and queries."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.database_utils import DatabaseError, DuplicateError
from app.models.application import Application, ApplicationStatus, apply_status
from app.models.job import JobPlatform
from app.repositories.application_repository import ApplicationRepository, application_repository
from app.repositories.base import to_object_id
from app.repositories.job_repository import JobRepository, job_repository
from app.services.queue_service import ApplicationJob, QueueService, QueueUnavailableError

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """Base class for application lifecycle errors."""


class DuplicateApplicationError(ApplicationError):
    """The user already has an application for this job."""


class ApplicationNotFoundError(ApplicationError):
    """No application with the given id (for this user)."""


class JobNotFoundError(ApplicationError):
    """The referenced job is not in the catalog."""


class ApplicationValidationError(ApplicationError):
    """The request cannot produce a valid application."""


class ApplicationService:
    """Creates applications, enqueues their jobs and applies completion reports."""

    def __init__(self, queue_service: QueueService,
                 applications: ApplicationRepository = application_repository,
                 jobs: JobRepository = job_repository):
        self.queue_service = queue_service
        self.applications = applications
        self.jobs = jobs

    async def create_application(self,
                                 user_id: str,
                                 job_id: str,
                                 resume_id: str,
                                 job_url: Optional[str] = None,
                                 platform: Optional[str] = None,
                                 email: Optional[str] = None,
                                 phone: Optional[str] = None) -> Application:
        """Create a PENDING application and enqueue it for the worker.

        Raises:
            DuplicateApplicationError: the user already applied to this job
            JobNotFoundError: job_url/platform omitted and the job is unknown
            ApplicationValidationError: malformed ids or no usable platform
            QueueUnavailableError: the job could not be enqueued; the
                application was rolled back
        """
        ids = {name: to_object_id(value) for name, value in
               (("user_id", user_id), ("job_id", job_id), ("resume_id", resume_id))}
        invalid = [name for name, value in ids.items() if value is None]
        if invalid:
            raise ApplicationValidationError(f"Invalid identifier(s): {', '.join(invalid)}")

        existing = await self.applications.find_by_user_and_job(ids["user_id"], ids["job_id"])
        if existing:
            raise DuplicateApplicationError(
                f"Application already exists for job {job_id} (status={existing.status.value})"
            )

        if not job_url or not platform:
            job = await self.jobs.get_by_id(ids["job_id"])
            if not job:
                raise JobNotFoundError(f"Job {job_id} not found")
            job_url = job_url or job.url
            platform = platform or job.platform.value

        platform = platform.strip().upper()
        if platform not in JobPlatform.__members__:
            raise ApplicationValidationError(f"Unknown platform: {platform}")

        try:
            application = await self.applications.create_application(
                ids["user_id"], ids["job_id"], ids["resume_id"]
            )
        except DuplicateError as e:
            raise DuplicateApplicationError(f"Application already exists for job {job_id}") from e

        application_id = str(application.id)
        try:
            await self.queue_service.add_application_job(ApplicationJob(
                application_id=application_id,
                user_id=user_id,
                job_id=job_id,
                resume_id=resume_id,
                platform=platform,
                job_url=job_url,
                email=email,
                phone=phone,
            ))
        except QueueUnavailableError:
            logger.error(f"Enqueue failed for application {application_id}, rolling back")
            try:
                await self.applications.delete(application_id)
            except DatabaseError as e:
                logger.error(f"Rollback of application {application_id} failed: {e}")
            raise

        logger.info(f"Created application {application_id} for user {user_id} on {platform}")
        return application

    async def complete_application(self,
                                   application_id: str,
                                   status: ApplicationStatus,
                                   error_message: Optional[str] = None,
                                   applied_at: Optional[datetime] = None) -> Application:
        """Apply the worker's completion report.

        A repeat of the recorded terminal state is accepted as a no-op.

        Raises:
            ApplicationNotFoundError: unknown application id
            InvalidTransitionError: the record already holds the other
                terminal state
        """
        if not status.is_terminal:
            raise ApplicationValidationError("Completion status must be SUCCESS or FAILED")

        application = await self._transition(application_id, status, error_message, applied_at)
        await self.queue_service.acknowledge(
            application_id, status == ApplicationStatus.SUCCESS, error_message
        )
        return application

    async def update_application_status(self,
                                        application_id: str,
                                        status: ApplicationStatus,
                                        error_message: Optional[str] = None) -> Application:
        """Manually move an application to a new status."""
        return await self._transition(application_id, status, error_message)

    async def _transition(self, application_id: str, status: ApplicationStatus,
                          error_message: Optional[str] = None,
                          applied_at: Optional[datetime] = None) -> Application:
        application = await self.applications.get_by_id(application_id)
        if not application:
            raise ApplicationNotFoundError(f"Application {application_id} not found")

        if apply_status(application, status, error_message, applied_at):
            await self.applications.save(application)
            logger.info(f"Application {application_id} -> {status.value}")
        else:
            logger.info(f"Application {application_id} already {status.value}, ignoring repeat")
        return application

    async def get_user_applications(self, user_id: str) -> List[Application]:
        return await self.applications.find_by_user(user_id)

    async def get_application_by_id(self, application_id: str, user_id: str) -> Application:
        application = await self.applications.get_by_id(application_id)
        if not application or str(application.user_id) != str(user_id):
            raise ApplicationNotFoundError("Application not found")
        return application

    async def get_application_by_job_id(self, user_id: str, job_id: str) -> Optional[Application]:
        return await self.applications.find_by_user_and_job(user_id, job_id)

    async def get_application_stats(self, user_id: str) -> Dict[str, Any]:
        return await self.applications.get_application_statistics(user_id)
