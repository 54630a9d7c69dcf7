"""Application configuration using Pydantic Settings.

Environment variables are loaded with the CITATIONS_ prefix.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Citation engine settings loaded from environment variables.

    Pattern: Pydantic Settings with Environment Variables
    """

    # Service configuration
    service_name: str = "citation-engine"
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Document defaults
    default_style_id: str = Field(
        default="apa",
        description="Citation style assigned to newly created documents",
    )

    # Marker placement
    anchor_search_enabled: bool = Field(
        default=True,
        description="Use stored offsets to choose among repeated occurrences of cited text",
    )
    append_marker_when_missing: bool = Field(
        default=True,
        description="Append the marker at the end of content when cited text is not found",
    )

    model_config = SettingsConfigDict(
        env_prefix="CITATIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
