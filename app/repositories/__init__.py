"""Repository pattern implementation for data access layer."""

from .base import BaseRepository
from .application_repository import ApplicationRepository, application_repository
from .job_repository import JobRepository, job_repository

__all__ = [
    "BaseRepository",
    "ApplicationRepository",
    "JobRepository",
    "application_repository",
    "job_repository",
]
