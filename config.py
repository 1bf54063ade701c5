"""
Configuration for the finance tracker API.

Values come from environment variables or a ``.env`` file. The app factory
receives a ``Settings`` instance explicitly, so tests can build isolated apps
without touching the environment.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite:///./finance.db",
        description="SQLAlchemy database URL",
    )

    # Tokens
    jwt_secret: Optional[str] = Field(
        default=None,
        description="Signing secret; a temporary one is generated when unset",
    )
    jwt_algorithm: str = Field(default="HS256")
    token_expire_days: int = Field(default=7, ge=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Uploads
    upload_dir: str = Field(default="uploads")
    max_upload_size_mb: int = Field(default=10, ge=1, le=100)

    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Budget alert job
    enable_scheduler: bool = Field(default=True)
    alert_hour: int = Field(default=0, ge=0, le=23)

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload after changing the environment.
    """
    return Settings()
