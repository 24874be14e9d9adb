"""Application settings using Pydantic Settings."""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_comma_separated_list(v):
    """Parse comma-separated string into list."""
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    if isinstance(v, list):
        return v
    return []


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Cloud Files API", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Storage
    storage_provider: str = Field(default="r2", alias="STORAGE_PROVIDER")
    storage_access_key_id: str = Field(default="", alias="STORAGE_ACCESS_KEY_ID")
    storage_secret_access_key: str = Field(default="", alias="STORAGE_SECRET_ACCESS_KEY")
    storage_region: str = Field(default="auto", alias="STORAGE_REGION")
    storage_endpoint_url: str = Field(default="", alias="STORAGE_ENDPOINT_URL")
    storage_bucket_name: str = Field(default="", alias="STORAGE_BUCKET_NAME")

    # Cloudflare R2
    r2_account_id: str = Field(default="", alias="R2_ACCOUNT_ID")

    # Wasabi
    wasabi_endpoint: str = Field(
        default="https://s3.wasabisys.com", alias="WASABI_ENDPOINT"
    )

    # JWT
    jwt_secret_key: str = Field(
        default="your-super-secret-jwt-key-change-in-production",
        alias="JWT_SECRET_KEY",
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_access_token_expire_minutes: int = Field(
        default=60, alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES"
    )
    jwt_cookie_name: str = Field(default="cloudfiles_token", alias="JWT_COOKIE_NAME")

    # CORS (stored as string, parsed via property)
    allowed_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        alias="ALLOWED_ORIGINS",
        exclude=True,  # Don't include in model dump
    )

    @property
    def allowed_origins(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return parse_comma_separated_list(self.allowed_origins_str)

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_per_minute: int = Field(default=60, alias="RATE_LIMIT_PER_MINUTE")

    # Single-shot upload
    max_upload_size_mb: int = Field(default=100, alias="MAX_UPLOAD_SIZE_MB")

    # Multipart upload
    multipart_max_part_size_mb: int = Field(default=100, alias="MULTIPART_MAX_PART_SIZE_MB")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def max_upload_size_bytes(self) -> int:
        """Convert max single-shot upload size from MB to bytes."""
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def multipart_max_part_size_bytes(self) -> int:
        """Convert max multipart part size from MB to bytes."""
        return self.multipart_max_part_size_mb * 1024 * 1024

    @property
    def storage_configured(self) -> bool:
        """A bucket name is the minimum needed to talk to storage."""
        return bool(self.storage_bucket_name)


# Global settings instance
settings = Settings()
