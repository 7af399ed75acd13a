"""
API Server Configuration

Pydantic settings for the FastAPI server.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """Server settings, read from OPENJOURNEY_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="OPENJOURNEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)

    # Files
    settings_file: Optional[str] = Field(default="config/settings.json")
    config_file: Optional[str] = Field(default=None)

    # Fall back to GOOGLE_AI_API_KEY / FAL_KEY when no key is stored
    use_env_credentials: bool = Field(default=True)


@lru_cache()
def get_server_settings() -> ServerSettings:
    """Get cached settings instance."""
    return ServerSettings()
