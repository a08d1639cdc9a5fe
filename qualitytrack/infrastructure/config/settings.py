from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "QualityTrack"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./qualitytrack.db"
    database_echo: bool = False

    # Security
    secret_key: str = ""  # Loaded from environment, validated in model_validator
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 hours

    # Authorization
    permission_cache_ttl_seconds: float = 300  # 5 minutes
    authz_store_timeout_seconds: float = 5.0  # Store lookups fail closed after this

    # Permission audit log paging
    audit_default_page_size: int = 100
    audit_max_page_size: int = 500

    # OpenTelemetry Distributed Tracing
    telemetry_enabled: bool = False

    @model_validator(mode="after")
    def validate_authorization_config(self) -> "Settings":
        """Validate required secrets and authorization cache, timeout and paging configuration"""
        if not self.secret_key:
            raise ValueError("SECRET_KEY is required. Generate with: openssl rand -hex 32")
        if self.permission_cache_ttl_seconds <= 0:
            raise ValueError("PERMISSION_CACHE_TTL_SECONDS must be positive.")
        if self.authz_store_timeout_seconds <= 0:
            raise ValueError("AUTHZ_STORE_TIMEOUT_SECONDS must be positive.")
        if self.audit_default_page_size < 1:
            raise ValueError("AUDIT_DEFAULT_PAGE_SIZE must be at least 1.")
        if self.audit_default_page_size > self.audit_max_page_size:
            raise ValueError(
                f"AUDIT_DEFAULT_PAGE_SIZE ({self.audit_default_page_size}) cannot exceed "
                f"AUDIT_MAX_PAGE_SIZE ({self.audit_max_page_size})"
            )
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="allow", case_sensitive=False
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
