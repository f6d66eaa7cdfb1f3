"""Configuration management for the ROI Brain engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Anthropic configuration
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")

    # Environment
    ROI_BRAIN_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Generation configuration
    ROI_BRAIN_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model for report generation"
    )
    ROI_BRAIN_MAX_TOKENS: int = Field(default=4000, description="Max output tokens per report")
    ROI_BRAIN_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature")
    ROI_BRAIN_PROMPT_VERSION: str = Field(
        default="roi_brain_v2", description="Prompt version for cache keys and tracking"
    )
    ROI_BRAIN_KB_VERSION: str = Field(
        default="roibrain_kb_v1", description="Knowledge base version for cache keys"
    )

    # Cache configuration
    CACHE_L1_MAX_SIZE: int = Field(default=200, description="Max entries in the in-process cache")
    CACHE_TTL_SECONDS: int = Field(default=600, description="TTL for successful responses")
    CACHE_NEGATIVE_TTL_SECONDS: int = Field(
        default=60, description="TTL for recorded generation failures"
    )
    CACHE_L2_ENABLED: bool = Field(default=True, description="Use the Supabase cache tier")
    CACHE_L2_TTL_SECONDS: int = Field(
        default=1200, description="TTL for persisted responses (outlives the in-process tier)"
    )
    CACHE_L2_TABLE: str = Field(default="roi_brain_cache", description="Persistent cache table")


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
