from functools import lru_cache
from typing import Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings

DEVELOPMENT = "development"


class Settings(BaseSettings):
    # --- Upstream (Replicate) ---
    replicate_api_key: Optional[str] = Field(default=None, validation_alias="REPLICATE_API_KEY")
    replicate_base_url: AnyHttpUrl = Field(default="https://api.replicate.com/v1/", validation_alias="REPLICATE_BASE_URL")
    # None disables the client-side timeout; the provider's own limit applies
    upstream_timeout: Optional[float] = Field(default=None, validation_alias="UPSTREAM_TIMEOUT")
    upstream_concurrency: int = Field(default=1, ge=1, validation_alias="UPSTREAM_CONCURRENCY")
    shutdown_drain_timeout: float = Field(default=30.0, validation_alias="SHUTDOWN_DRAIN_TIMEOUT")

    # --- Image analysis / artist selection ---
    image_fetch_timeout: float = Field(default=15.0, validation_alias="IMAGE_FETCH_TIMEOUT")
    gemini_api_key: Optional[str] = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI_MODEL")

    # --- Runtime ---
    app_env: str = Field(default="production", validation_alias="APP_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == DEVELOPMENT


@lru_cache
def get_settings() -> Settings:
    return Settings()
