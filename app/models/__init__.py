"""Data models package for the job application queue service."""

from .application import (
    Application,
    ApplicationStatus,
    InvalidTransitionError,
    apply_status,
    check_transition,
)
from .job import Job, JobPlatform

__all__ = [
    # Document models
    "Application",
    "Job",

    # Application related
    "ApplicationStatus",
    "InvalidTransitionError",
    "apply_status",
    "check_transition",

    # Job related
    "JobPlatform",
]

# Document models for Beanie ODM initialization
DOCUMENT_MODELS = [Application, Job]
