"""
Configuration settings for shelfsim.

Everything is read from environment variables (or a local ``.env`` file)
through pydantic-settings.  Grouped settings such as the OpenAI credentials
are exposed as properties that re-validate the flat settings dump.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped configuration models
# =====================================================================


class OpenAIConfig(BaseModel):
    """OpenAI API configuration."""

    api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")
    image_model: str = Field(default="dall-e-3", alias="OPENAI_IMAGE_MODEL")
    base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")

    model_config = {"populate_by_name": True}


# =====================================================================
# Main settings
# =====================================================================


class Settings(BaseSettings):
    """Application settings bound from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Server
    server_host: str = Field(default="127.0.0.1", alias="SHELFSIM_SERVER_HOST")
    server_port: int = Field(default=8000, alias="SHELFSIM_SERVER_PORT")

    # Logging
    log_level: str = Field(default="INFO", alias="SHELFSIM_LOG_LEVEL")
    log_format: str = Field(default="detailed", alias="SHELFSIM_LOG_FORMAT")

    # Storage
    database_url: str = Field(
        default="sqlite:///data/shelfsim.db", alias="SHELFSIM_DATABASE_URL"
    )
    upload_dir: str = Field(default="uploads", alias="SHELFSIM_UPLOAD_DIR")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, alias="SHELFSIM_MAX_UPLOAD_BYTES")
    theme_path: str = Field(default="theme.json", alias="SHELFSIM_THEME_PATH")

    # Sessions
    session_max_age: int = Field(default=24 * 60 * 60, alias="SHELFSIM_SESSION_MAX_AGE")
    session_cookie_secure: bool = Field(default=False, alias="SHELFSIM_SESSION_COOKIE_SECURE")

    # Simulation
    max_choice_tasks: int = Field(
        default=0,
        ge=0,
        alias="SHELFSIM_MAX_CHOICE_TASKS",
        description="Cap on conjoint cards per persona (0 = full factorial)",
    )

    # Theme screenshots
    chromium_path: str = Field(default="/usr/bin/chromium", alias="SHELFSIM_CHROMIUM_PATH")
    chromedriver_path: str = Field(default="/usr/bin/chromedriver", alias="SHELFSIM_CHROMEDRIVER_PATH")

    # OpenAI (flat fields so the grouped model can pick them up by alias)
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")
    openai_image_model: str = Field(default="dall-e-3", alias="OPENAI_IMAGE_MODEL")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")

    @property
    def openai(self) -> OpenAIConfig:
        """Get OpenAI configuration from environment variables."""
        return OpenAIConfig.model_validate(self.model_dump(by_alias=True))


@lru_cache
def get_settings() -> Settings:
    return Settings()
