"""Configuration management for fotofi."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    ENV: str = "local"
    SERVICE_NAME: str = "fotofi"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Object storage (S3-compatible, Cloudflare R2)
    STORAGE_ENDPOINT: str = "a549762b7ab37dfa8434aceb53c060e1.r2.cloudflarestorage.com"
    STORAGE_REGION: str = "auto"
    STORAGE_SECURE: bool = True
    DEFAULT_BUCKET_NAME: str = "fotofi-photos"
    PUBLIC_MEDIA_BASE_URL: str = "https://storage.infidrive.net"

    # Multipart upload
    UPLOAD_CHUNK_SIZE_MB: int = 10
    SIGNED_URL_EXPIRY_SECONDS: int = 60
    STORAGE_CLIENT_TTL_SECONDS: int = 15 * 60

    # Relational store
    DATABASE_URL: str = "sqlite:///./fotofi.db"

    # Guest submissions
    REDIS_URL: str = "redis://localhost:6379/0"

    # Chat LLM (any OpenAI-compatible endpoint)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    LLM_MODEL: str = "gemini-2.5-flash-lite"
    LLM_ENABLED: bool = True
    LLM_TIMEOUT_SECONDS: float = 30.0

    # Auth sessions
    SESSION_COOKIE_NAME: str = "fotofi_session"
    SESSION_TTL_HOURS: int = 24 * 7
    MIN_PASSWORD_LENGTH: int = 8

    # Transactional email (Resend)
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = "fotofi <no-reply@fotofi.app>"
    APP_BASE_URL: str = "http://localhost:8000"

    @property
    def chunk_size_bytes(self) -> int:
        """Convert UPLOAD_CHUNK_SIZE_MB to bytes."""
        return self.UPLOAD_CHUNK_SIZE_MB * 1024 * 1024

    @property
    def email_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY)


def bucket_credential_names(bucket_name: str) -> tuple[str, str]:
    """Return the environment variable names holding a bucket's key pair.

    Dashes are not valid in most shells' variable names, so they map to
    underscores: ``fotofi-photos`` reads ``FOTOFI_PHOTOS_ACCESS_KEY_ID``.
    """
    prefix = bucket_name.upper().replace("-", "_")
    return f"{prefix}_ACCESS_KEY_ID", f"{prefix}_SECRET_ACCESS_KEY"


def resolve_bucket_credentials(bucket_name: str) -> tuple[str, str] | None:
    """Read a bucket's access key pair from the environment at call time.

    The underscore names from ``bucket_credential_names`` win; the bare
    upper-cased names (``FOTOFI-PHOTOS_ACCESS_KEY_ID``) are read when
    they are not set.

    Returns:
        (access_key, secret_key), or None when either half is missing
    """
    prefix = bucket_name.upper()
    for access_name, secret_name in (
        bucket_credential_names(bucket_name),
        (f"{prefix}_ACCESS_KEY_ID", f"{prefix}_SECRET_ACCESS_KEY"),
    ):
        access_key = os.environ.get(access_name)
        secret_key = os.environ.get(secret_name)
        if access_key and secret_key:
            return access_key, secret_key
    return None


# Singleton settings instance
settings = Settings()
