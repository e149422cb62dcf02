from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

# Longest expiry a SigV4 presigned URL accepts (7 days).
MAX_SIGNED_URL_TTL = 604800

REQUIRED_STORAGE_SETTINGS = (
    ("aws_region", "AWS_REGION"),
    ("aws_bucket_name", "AWS_BUCKET_NAME"),
    ("aws_access_key_id", "AWS_ACCESS_KEY_ID"),
    ("aws_secret_access_key", "AWS_SECRET_ACCESS_KEY"),
)


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    env: Literal["local", "prod", "test"] = Field(default="local", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    aws_region: str | None = Field(default=None, alias="AWS_REGION")
    aws_bucket_name: str | None = Field(default=None, alias="AWS_BUCKET_NAME")
    aws_access_key_id: str | None = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    s3_endpoint: HttpUrl | None = Field(default=None, alias="S3_ENDPOINT_URL")

    s3_connect_timeout: float = Field(default=5.0, gt=0, alias="S3_CONNECT_TIMEOUT")
    s3_read_timeout: float = Field(default=60.0, gt=0, alias="S3_READ_TIMEOUT")
    s3_max_attempts: int = Field(default=1, ge=1, alias="S3_MAX_ATTEMPTS")
    s3_max_pool_connections: int = Field(default=10, ge=1, alias="S3_MAX_POOL_CONNECTIONS")

    signed_url_ttl: int = Field(default=3600, ge=1, le=MAX_SIGNED_URL_TTL, alias="SIGNED_URL_TTL")
    presigned_upload_ttl: int = Field(
        default=900, ge=1, le=MAX_SIGNED_URL_TTL, alias="PRESIGNED_UPLOAD_TTL"
    )
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1, alias="MAX_UPLOAD_BYTES")
    proxy_cache_max_age: int = Field(default=86400, ge=0, alias="PROXY_CACHE_MAX_AGE")
    stream_chunk_size: int = Field(default=64 * 1024, ge=1024, alias="STREAM_CHUNK_SIZE")

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        alias="CORS_ORIGINS",
    )

    jwt_secret_key: str | None = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    upload_auth_required: bool = Field(default=False, alias="UPLOAD_AUTH_REQUIRED")

    def missing_storage_settings(self) -> list[str]:
        """Environment variable names of required storage settings that are unset."""
        return [
            env_name
            for attr, env_name in REQUIRED_STORAGE_SETTINGS
            if not (getattr(self, attr) or "").strip()
        ]

    def validate_for_startup(self) -> None:
        missing = self.missing_storage_settings()
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing)
            )
        if self.upload_auth_required and not self.jwt_secret_key:
            raise ConfigurationError(
                "UPLOAD_AUTH_REQUIRED is set but JWT_SECRET_KEY is missing"
            )


@lru_cache
def get_settings() -> Settings:
    return Settings()
