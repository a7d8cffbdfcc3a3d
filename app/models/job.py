"""Job model for catalog entries that applications refer to."""

from datetime import datetime, timezone
from typing import Optional
from enum import Enum
from beanie import Document, Indexed
from pydantic import Field, field_validator


class JobPlatform(str, Enum):
    """Job sites a posting can come from."""
    LINKEDIN = "LINKEDIN"
    INDEED = "INDEED"
    WELLFOUND = "WELLFOUND"
    COMPANY = "COMPANY"


class Job(Document):
    """Job listing document model."""

    title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    platform: JobPlatform
    url: Indexed(str, unique=True)
    description: str
    location: Optional[str] = None
    salary: Optional[str] = None
    discovered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('description')
    @classmethod
    def validate_description_length(cls, v):
        """Validate description is not too long."""
        if len(v) > 20000:
            raise ValueError('Job description cannot exceed 20,000 characters')
        return v.strip()

    class Settings:
        name = "jobs"
        indexes = [
            "platform",
            "discovered_at",
        ]
