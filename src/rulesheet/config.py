# application settings loaded from environment variables and .env
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # generation endpoint (openai-compatible chat completions)
    openai_api_key: Optional[str] = Field(default=None, description="API key for the chat completion endpoint")
    openai_model: str = Field(default="gpt-5", description="Model used to write summaries")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="Base URL of the chat completion API")
    generation_timeout: float = Field(default=300.0, description="HTTP timeout for one generation call (seconds)")
    generation_temperature: Optional[float] = Field(default=None, description="Sampling temperature, unset uses the model default")

    # upload limits
    max_upload_mb: int = Field(default=20, description="Maximum size of one uploaded PDF in megabytes")
    min_text_length: int = Field(default=50, description="Minimum trimmed characters a PDF must yield")

    # storage
    data_dir: str = Field(default="data/summaries", description="Directory holding one JSON document per summary")
    save_timeout: float = Field(default=15.0, description="Seconds before a store write is treated as failed")

    # access control
    upload_password_hash: Optional[str] = Field(default=None, description="sha256 hex digest gating upload access")
    firebase_api_key: Optional[str] = Field(default=None, description="Web API key of the identity provider project")
    session_secret: str = Field(default="change-me-in-production", description="Secret used to sign session cookies")

    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """Get the cached settings instance"""
    return Settings()
