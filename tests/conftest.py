"""Shared fixtures for the queue service and worker tests."""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import fakeredis
import pytest
from bson import ObjectId

from app.config import Settings
from app.models.application import ApplicationStatus, utcnow
from app.queue.store import JobQueueStore
from app.services.queue_service import QueueService


async def no_sleep(delay: float) -> None:
    """Stand-in for asyncio.sleep that records nothing and returns at once."""


@pytest.fixture
def settings() -> Settings:
    return Settings(
        queue_peek_timeout=0.5,
        queue_poll_timeout=1.0,
        queue_backoff_delay=0.01,
        queue_error_log_interval=60.0,
    )


@pytest.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(redis) -> JobQueueStore:
    return JobQueueStore(redis, queue_name="application", prefix="bull")


@pytest.fixture
def queue_service(store, settings) -> QueueService:
    return QueueService(store, settings, sleep=no_sleep)


def make_payload(application_id: str = "app-1", platform: str = "LINKEDIN", **overrides) -> Dict[str, Any]:
    payload = {
        "applicationId": application_id,
        "userId": "user-1",
        "jobId": "job-1",
        "resumeId": "resume-1",
        "platform": platform,
        "jobUrl": "https://www.linkedin.com/jobs/view/123",
    }
    payload.update(overrides)
    return payload


def make_application(status: ApplicationStatus = ApplicationStatus.PENDING, **overrides) -> SimpleNamespace:
    """Application-shaped record usable without an initialized Beanie."""
    now = utcnow()
    fields = dict(
        id=ObjectId(),
        user_id=ObjectId(),
        job_id=ObjectId(),
        resume_id=ObjectId(),
        status=status,
        applied_at=None,
        error_message=None,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class FakeApplicationRepository:
    """In-memory stand-in for ApplicationRepository."""

    def __init__(self):
        self.records: Dict[str, SimpleNamespace] = {}
        self.saved: List[str] = []
        self.deleted: List[str] = []

    async def create_application(self, user_id, job_id, resume_id):
        record = make_application(user_id=user_id, job_id=job_id, resume_id=resume_id)
        self.records[str(record.id)] = record
        return record

    async def find_by_user_and_job(self, user_id, job_id) -> Optional[SimpleNamespace]:
        for record in self.records.values():
            if str(record.user_id) == str(user_id) and str(record.job_id) == str(job_id):
                return record
        return None

    async def find_by_user(self, user_id):
        records = [r for r in self.records.values() if str(r.user_id) == str(user_id)]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def get_by_id(self, document_id):
        return self.records.get(str(document_id))

    async def save(self, document):
        self.saved.append(str(document.id))
        return document

    async def delete(self, document_id) -> bool:
        self.deleted.append(str(document_id))
        return self.records.pop(str(document_id), None) is not None

    async def get_application_statistics(self, user_id):
        return {"total": 0, "appliedToday": 0, "successRate": 0.0, "byStatus": {}}


class FakeJobRepository:
    def __init__(self, jobs: Optional[Dict[str, Any]] = None):
        self.jobs = jobs or {}

    async def get_by_id(self, document_id):
        return self.jobs.get(str(document_id))


@pytest.fixture
def applications() -> FakeApplicationRepository:
    return FakeApplicationRepository()


@pytest.fixture
def jobs() -> FakeJobRepository:
    return FakeJobRepository()
