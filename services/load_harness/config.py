"""Configuration management for the vote load harness."""
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Harness settings loaded from environment variables."""

    # Logging
    DEBUG: bool = False

    # Election API
    API_BASE_URL: str = "http://localhost:80/api/v1"
    AUTH_SCHEME: str = ""

    # Admin credentials (token wins; otherwise log in with username/password)
    ADMIN_TOKEN: Optional[str] = None
    ADMIN_USERNAME: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    # Fixture
    ELECTION_NAME: str = "test-election"
    ELECTION_START_DATE: str = "2006-01-02 15:04:05"
    ELECTION_END_DATE: str = "2026-05-02 15:04:05"
    CANDIDATE_COUNT: int = Field(default=5, ge=1)
    TOTAL_VOTERS: int = Field(default=2000, ge=1)

    # Pass/fail
    FAILURE_RATE_THRESHOLD: float = Field(default=0.05, gt=0.0, le=1.0)

    # HTTP client
    REQUEST_TIMEOUT: float = Field(default=30.0, gt=0.0)
    MAX_CONNECTIONS: int = Field(default=1000, ge=1)

    # Output
    METRICS_PORT: Optional[int] = None
    RESULTS_DIR: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def has_admin_credentials(self) -> bool:
        """True if an admin token or admin username/password is configured."""
        return bool(self.ADMIN_TOKEN) or bool(self.ADMIN_USERNAME and self.ADMIN_PASSWORD)
