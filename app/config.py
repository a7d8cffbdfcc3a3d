"""Configuration settings for the Job Application Queue service."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application settings
    app_name: str = "Job Application Queue"
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "text"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Database settings
    mongodb_url: str = "mongodb://localhost:27017"
    database_name: str = "job_applications"
    mongodb_max_connections: int = 100
    mongodb_min_connections: int = 10

    # Redis settings
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0
    redis_connect_timeout: float = 10.0

    # Queue settings
    queue_name: str = "application"
    queue_prefix: str = "bull"
    queue_job_name: str = "process-application"
    queue_enqueue_attempts: int = 3
    queue_backoff_delay: float = 2.0  # seconds, doubled per attempt
    queue_peek_timeout: float = 3.0
    queue_poll_timeout: float = 4.0
    queue_error_log_interval: float = 60.0

    @property
    def redis_address(self) -> str:
        """host:port of the queue broker."""
        return f"{self.redis_host}:{self.redis_port}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()
