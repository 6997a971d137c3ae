"""
Configuration settings for the Hospitality QA Portal API
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # App
    PROJECT_NAME: str = "Hospitality QA Portal API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # Security & JWT Authentication
    SECRET_KEY: str = Field(default="change-me-in-production")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Local development only: every request runs as the first active admin.
    # Ignored outside ENVIRONMENT=development.
    DEV_BYPASS_AUTH: bool = Field(default=False)

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./qa_portal.db",
        description="Database connection URL - should be set via environment variable"
    )
    DB_ECHO: bool = Field(default=False)

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"]
    )

    # Task escalation
    TASK_ESCALATION_THRESHOLD: int = Field(default=6)  # native scale, inclusive
    REPEAT_ISSUE_MATCH_CATEGORY: bool = Field(default=False)
    REPEAT_ISSUE_LOOKBACK_DAYS: Optional[int] = Field(default=None)
    REPEAT_ISSUE_STATUSES: List[str] = Field(
        default=["open", "investigating", "closed"]
    )

    # Dashboards
    DASHBOARD_TREND_MONTHS: int = Field(default=12)
    DASHBOARD_SPARKLINE_MONTHS: int = Field(default=6)


settings = Settings()
