"""Tests for the application lifecycle service."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId

from app.database_utils import DuplicateError
from app.models.application import ApplicationStatus, InvalidTransitionError
from app.models.job import JobPlatform
from app.services.application_service import (
    ApplicationNotFoundError,
    ApplicationService,
    ApplicationValidationError,
    DuplicateApplicationError,
    JobNotFoundError,
)
from app.services.queue_service import QueueUnavailableError


@pytest.fixture
def ids():
    return SimpleNamespace(user=str(ObjectId()), job=str(ObjectId()), resume=str(ObjectId()))


@pytest.fixture
def service(queue_service, applications, jobs):
    return ApplicationService(queue_service, applications=applications, jobs=jobs)


async def create(service, ids, **kwargs):
    kwargs.setdefault("job_url", "https://www.linkedin.com/jobs/view/123")
    kwargs.setdefault("platform", "linkedin")
    return await service.create_application(ids.user, ids.job, ids.resume, **kwargs)


class TestCreateApplication:
    async def test_creates_pending_record_and_enqueues_job(self, service, ids, queue_service):
        application = await create(service, ids, email="me@example.com")

        assert application.status == ApplicationStatus.PENDING
        job = await queue_service.get_next_job()
        assert job == {
            "applicationId": str(application.id),
            "userId": ids.user,
            "jobId": ids.job,
            "resumeId": ids.resume,
            "platform": "LINKEDIN",
            "jobUrl": "https://www.linkedin.com/jobs/view/123",
            "email": "me@example.com",
            "id": "1",
        }

    async def test_duplicate_is_rejected_without_second_enqueue(self, service, ids, store):
        await create(service, ids)

        with pytest.raises(DuplicateApplicationError):
            await create(service, ids)

        assert (await store.counts()).waiting == 1

    async def test_unique_index_race_maps_to_duplicate(self, service, ids, applications, store):
        applications.create_application = AsyncMock(side_effect=DuplicateError("E11000 duplicate key"))

        with pytest.raises(DuplicateApplicationError):
            await create(service, ids)

        assert (await store.counts()).waiting == 0

    async def test_resolves_url_and_platform_from_job_catalog(self, service, ids, jobs, queue_service):
        jobs.jobs[ids.job] = SimpleNamespace(url="https://www.indeed.com/viewjob?jk=1", platform=JobPlatform.INDEED)

        await service.create_application(ids.user, ids.job, ids.resume)

        job = await queue_service.get_next_job()
        assert job["platform"] == "INDEED"
        assert job["jobUrl"] == "https://www.indeed.com/viewjob?jk=1"

    async def test_unknown_job_without_url(self, service, ids):
        with pytest.raises(JobNotFoundError):
            await service.create_application(ids.user, ids.job, ids.resume)

    async def test_unknown_platform(self, service, ids):
        with pytest.raises(ApplicationValidationError, match="MONSTER"):
            await create(service, ids, platform="monster")

    async def test_malformed_ids(self, service, ids):
        with pytest.raises(ApplicationValidationError, match="resume_id"):
            await service.create_application(ids.user, ids.job, "not-an-id", job_url="u", platform="INDEED")

    async def test_enqueue_failure_rolls_back_record(self, service, ids, applications, queue_service):
        queue_service.add_application_job = AsyncMock(side_effect=QueueUnavailableError("down"))

        with pytest.raises(QueueUnavailableError):
            await create(service, ids)

        assert applications.records == {}
        assert len(applications.deleted) == 1
        # The user can retry once the broker is back
        queue_service.add_application_job = AsyncMock()
        await create(service, ids)


class TestCompleteApplication:
    async def test_success_sets_applied_at(self, service, ids, applications):
        application = await create(service, ids)
        applied_at = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

        result = await service.complete_application(str(application.id), ApplicationStatus.SUCCESS,
                                                    applied_at=applied_at)

        assert result.status == ApplicationStatus.SUCCESS
        assert result.applied_at == applied_at
        assert applications.saved == [str(application.id)]

    async def test_failure_records_error_message(self, service, ids):
        application = await create(service, ids)

        result = await service.complete_application(str(application.id), ApplicationStatus.FAILED,
                                                    error_message="Easy Apply button not found")

        assert result.status == ApplicationStatus.FAILED
        assert result.error_message == "Easy Apply button not found"

    async def test_repeat_report_is_idempotent(self, service, ids, applications):
        application = await create(service, ids)
        await service.complete_application(str(application.id), ApplicationStatus.SUCCESS)

        again = await service.complete_application(str(application.id), ApplicationStatus.SUCCESS)

        assert again.status == ApplicationStatus.SUCCESS
        assert applications.saved == [str(application.id)]

    async def test_conflicting_report_is_rejected(self, service, ids):
        application = await create(service, ids)
        await service.complete_application(str(application.id), ApplicationStatus.FAILED, error_message="x")

        with pytest.raises(InvalidTransitionError):
            await service.complete_application(str(application.id), ApplicationStatus.SUCCESS)

    async def test_pending_is_not_a_completion_status(self, service, ids):
        application = await create(service, ids)

        with pytest.raises(ApplicationValidationError):
            await service.complete_application(str(application.id), ApplicationStatus.PENDING)

    async def test_unknown_application(self, service):
        with pytest.raises(ApplicationNotFoundError):
            await service.complete_application(str(ObjectId()), ApplicationStatus.SUCCESS)

    async def test_acknowledges_claimed_queue_job(self, service, ids, queue_service):
        application = await create(service, ids)
        await queue_service.get_next_job()

        await service.complete_application(str(application.id), ApplicationStatus.SUCCESS)

        stats = await queue_service.get_queue_stats()
        assert (stats.active, stats.completed) == (0, 1)


class TestQueries:
    async def test_get_by_id_hides_other_users_records(self, service, ids):
        application = await create(service, ids)

        assert await service.get_application_by_id(str(application.id), ids.user) is application
        with pytest.raises(ApplicationNotFoundError):
            await service.get_application_by_id(str(application.id), str(ObjectId()))

    async def test_get_by_job_id(self, service, ids):
        application = await create(service, ids)

        assert await service.get_application_by_job_id(ids.user, ids.job) is application
        assert await service.get_application_by_job_id(ids.user, str(ObjectId())) is None

    async def test_manual_status_update_is_guarded(self, service, ids):
        application = await create(service, ids)
        await service.update_application_status(str(application.id), ApplicationStatus.FAILED, "gave up")

        with pytest.raises(InvalidTransitionError):
            await service.update_application_status(str(application.id), ApplicationStatus.PENDING)
