"""Wire models exchanged with the origin service."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApplyJob(BaseModel):
    """A claimed job as returned by ``GET /queue/jobs/next``."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Broker job id")
    application_id: str = Field(..., alias="applicationId")
    user_id: Optional[str] = Field(None, alias="userId")
    job_id: Optional[str] = Field(None, alias="jobId")
    resume_id: Optional[str] = Field(None, alias="resumeId")
    platform: str
    job_url: str = Field(..., alias="jobUrl")
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("platform")
    @classmethod
    def normalize_platform(cls, v: str) -> str:
        return v.strip().upper()


class CompletionReport(BaseModel):
    """Outcome of one job, posted to ``/applications/{id}/complete``."""

    status: str
    platform: Optional[str] = None
    applied_at: Optional[datetime] = None
    error_message: Optional[str] = None
    attempts: int = 0

    @classmethod
    def success(cls, platform: str, applied_at: Optional[datetime] = None,
                attempts: int = 1) -> "CompletionReport":
        return cls(
            status="SUCCESS",
            platform=platform,
            applied_at=applied_at or datetime.now(timezone.utc),
            attempts=attempts,
        )

    @classmethod
    def failed(cls, error_message: str, attempts: int = 0) -> "CompletionReport":
        return cls(status="FAILED", error_message=error_message, attempts=attempts)

    @property
    def succeeded(self) -> bool:
        return self.status == "SUCCESS"

    def to_body(self) -> Dict[str, Any]:
        """JSON body for the completion callback.

        The attempt count stays local; the origin only records the outcome.
        """
        if self.succeeded:
            return {
                "status": self.status,
                "appliedAt": self.applied_at.isoformat(),
                "platform": self.platform,
            }
        return {"status": self.status, "errorMessage": self.error_message}
