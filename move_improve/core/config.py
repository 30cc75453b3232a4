"""Configuration management for the Move or Improve decision service."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Configuration store (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")
    SUPABASE_SCHEMA: str = Field(
        default="public", description="Schema holding the questionnaire tables"
    )
    SUPABASE_TIMEOUT_SECONDS: int = Field(
        default=10, ge=1, description="Timeout for configuration store queries"
    )

    # Environment
    MI_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    LOG_LEVEL: str | None = Field(
        default=None, description="Explicit log level (overrides the environment default)"
    )

    # Answer conventions
    NA_SENTINEL: str = Field(
        default="NA", description="Answer value meaning the respondent opted out"
    )

    # Version listing
    VERSIONS_PAGE_LIMIT: int = Field(
        default=20, description="Default number of questionnaire versions to list"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
