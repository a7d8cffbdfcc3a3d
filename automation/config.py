"""Configuration settings for the automation worker."""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class WorkerSettings(BaseSettings):
    """Worker settings loaded from environment variables (API_URL, POLL_INTERVAL, ...)."""

    # Origin service
    api_url: str = "http://localhost:3001"
    request_timeout: float = 10.0

    # Polling
    poll_interval: float = 5.0
    max_concurrent_jobs: int = 1
    max_consecutive_timeouts: int = 10
    max_consecutive_not_found: int = 3

    # Browser automation
    headless: bool = True
    browser_timeout: int = 30000  # milliseconds
    max_retries: int = 3
    retry_delay: float = 5.0  # seconds between attempts

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("max_concurrent_jobs")
    @classmethod
    def single_job_only(cls, v: int) -> int:
        if v != 1:
            raise ValueError("max_concurrent_jobs must be 1; the worker processes one job at a time")
        return v

    @field_validator("poll_interval", "request_timeout")
    @classmethod
    def positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("max_retries", "max_consecutive_timeouts", "max_consecutive_not_found")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
