"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from econfeed.config.constants import DEFAULT_RATE_LIMITS, Source


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # API Keys (all optional; absence lowers the effective rate limit)
    bea_api_key: SecretStr | None = None
    census_api_key: SecretStr | None = None
    fred_api_key: SecretStr | None = None
    bls_api_key: SecretStr | None = None

    # HTTP
    http_timeout: float = 30.0

    # Cache
    cache_enabled: bool = True
    cache_ttl_hours: float = 24.0
    cache_max_size_mb: float = 100.0
    cache_path: str = "./.econfeed/cache.db"

    # Retry
    retry_enabled: bool = True
    retry_max_retries: int = 3
    retry_initial_delay_ms: int = 1000
    retry_backoff_enabled: bool = True
    retry_backoff_factor: float = 2.0

    # Rate Limits (requests per minute)
    rate_limit_enabled: bool = True
    rate_limit_overrides: dict[str, int] = {}

    @field_validator("cache_ttl_hours", "cache_max_size_mb", "http_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("retry_max_retries", "retry_initial_delay_ms")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value must not be negative")
        return v

    @field_validator("retry_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, v: float) -> float:
        if v < 1:
            raise ValueError("Backoff factor must be at least 1")
        return v

    @field_validator("rate_limit_overrides")
    @classmethod
    def validate_overrides(cls, v: dict[str, int]) -> dict[str, int]:
        normalized = {}
        for name, limit in v.items():
            source = Source(name.lower())
            if limit <= 0:
                raise ValueError(f"Rate limit for {name} must be positive")
            normalized[source.value] = limit
        return normalized

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cache_ttl_seconds(self) -> int:
        return int(self.cache_ttl_hours * 3600)

    @property
    def cache_max_size_bytes(self) -> int:
        return int(self.cache_max_size_mb * 1024 * 1024)

    def api_key(self, source: Source) -> str | None:
        """Return the plain API key configured for a source, if any."""
        secret = getattr(self, f"{source.value}_api_key", None)
        if secret is None:
            return None
        return secret.get_secret_value() or None

    def effective_rate_limit(self, source: Source, has_key: bool) -> int:
        """Resolve the per-minute quota for a source.

        A custom override wins; otherwise the provider default depends on
        whether an API key is configured.
        """
        override = self.rate_limit_overrides.get(source.value)
        if override is not None:
            return override
        with_key, without_key = DEFAULT_RATE_LIMITS[source]
        return with_key if has_key else without_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
