"""Job repository with job-specific operations."""

from app.models.job import Job
from app.repositories.base import BaseRepository


class JobRepository(BaseRepository[Job]):
    """Repository for Job document operations."""

    def __init__(self):
        super().__init__(Job)


# Global repository instance
job_repository = JobRepository()
