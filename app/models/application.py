"""Application model for tracking job application submissions."""

from datetime import datetime, timezone
from typing import Optional
from enum import Enum
from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationStatus(str, Enum):
    """Application processing status."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self != ApplicationStatus.PENDING


class InvalidTransitionError(ValueError):
    """Raised when a status change leaves a terminal state."""

    def __init__(self, current: ApplicationStatus, requested: ApplicationStatus):
        super().__init__(
            f"Application is already {current.value}; cannot transition to {requested.value}"
        )
        self.current = current
        self.requested = requested


def check_transition(current: ApplicationStatus, requested: ApplicationStatus) -> bool:
    """Validate a status change.

    Returns True when the change must be applied and False when it is a
    repeat of the terminal state already recorded. Raises
    InvalidTransitionError for any other move out of a terminal state.
    """
    if current == ApplicationStatus.PENDING:
        return requested != ApplicationStatus.PENDING
    if current == requested:
        return False
    raise InvalidTransitionError(current, requested)


def apply_status(record, status: ApplicationStatus,
                 error_message: Optional[str] = None,
                 applied_at: Optional[datetime] = None) -> bool:
    """Move ``record`` to ``status`` in memory, stamping the terminal fields.

    Works on anything shaped like an Application. Returns False when the
    change was a repeat of the recorded terminal state.
    """
    if not check_transition(record.status, status):
        return False

    record.status = status
    if status == ApplicationStatus.SUCCESS:
        record.applied_at = applied_at or utcnow()
    if error_message:
        record.error_message = error_message[:2000]
    record.updated_at = utcnow()
    return True


class Application(Document):
    """Job application tracking document."""

    # References
    user_id: PydanticObjectId = Field(..., description="User who submitted the application")
    job_id: PydanticObjectId = Field(..., description="Job that was applied to")
    resume_id: PydanticObjectId = Field(..., description="Resume used for this application")

    # Processing state
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING)
    applied_at: Optional[datetime] = Field(None, description="When the application was submitted")
    error_message: Optional[str] = Field(None, max_length=2000, description="Last automation error")

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "applications"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("job_id", ASCENDING)], unique=True,
                       name="user_job_unique"),
            "status",
            "applied_at",
            [("user_id", ASCENDING), ("created_at", DESCENDING)],
        ]
