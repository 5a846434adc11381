# src/images_api/config/settings.py
from typing import List
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing_extensions import Self

DEFAULT_TOKEN = "image_token"
DEFAULT_ALLOWED_REFERERS = ["https://www.example.com", "https://sub.example.com"]


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Explicit keyword arguments
    2. Environment variables
    3. .env file (if exists)
    4. Default values in this class (lowest priority)

    Usage:
        from images_api.config.settings import get_settings
        settings = get_settings()
        storage_dir = settings.storage_dir
    """

    # Application Settings
    app_name: str = Field(
        default="images-api",
        description="Application name"
    )

    environment: str = Field(
        default="development",
        description="Runtime environment: development or production"
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        alias="HOST",
        description="Interface the server binds to"
    )

    port: int = Field(
        default=10000,
        alias="PORT",
        description="Port the server listens on"
    )

    # Auth
    token: str = Field(
        default=DEFAULT_TOKEN,
        alias="TOKEN",
        min_length=1,
        description="Shared bearer token required for uploads. The default is insecure."
    )

    allowed_referers: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_REFERERS),
        description="Origins allowed to fetch stored images"
    )

    # Storage Configuration
    storage_dir: str = Field(
        default="images",
        description="Directory holding uploaded images"
    )

    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Largest accepted upload in bytes"
    )

    cache_max_age: int = Field(
        default=86400,
        ge=0,
        description="max-age (seconds) sent with served images"
    )

    derive_extension_from_mime: bool = Field(
        default=False,
        description="Name stored files by validated MIME type instead of the client filename"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @property
    def uses_default_token(self) -> bool:
        return self.token == DEFAULT_TOKEN

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        valid_environments = ["development", "production"]
        v = v.lower()
        if v not in valid_environments:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_environments}")
        return v

    @field_validator("allowed_referers")
    @classmethod
    def normalize_allowed_referers(cls, v: List[str]) -> List[str]:
        # Origins never carry a trailing slash
        return [origin.rstrip("/").lower() for origin in v]

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def check_token_overridden_in_production(self) -> Self:
        if self.environment == "production" and self.uses_default_token:
            raise ValueError("TOKEN must be set to a non-default value when environment is production")
        return self

    def masked(self) -> dict:
        """Settings as a dictionary with the token hidden, for display."""
        values = self.model_dump()
        values["token"] = "<default, insecure>" if self.uses_default_token else "********"
        return values

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        env_ignore_empty=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
