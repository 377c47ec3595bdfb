"""Application configuration with comprehensive validation."""
from typing import Optional, Literal
from functools import lru_cache
from pydantic import Field, field_validator, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with production-grade validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Classroom Observation Platform"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"
    SECRET_KEY: SecretStr = SecretStr("development-secret-key")

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Rate limiting (requests per window, per client identifier)
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=15 * 60, ge=1, le=86400)
    RATE_LIMIT_LIST: int = Field(default=50, ge=1, le=10000)
    RATE_LIMIT_CREATE: int = Field(default=10, ge=1, le=10000)
    RATE_LIMIT_TRANSITION: int = Field(default=20, ge=1, le=10000)

    # Snowflake
    SNOWFLAKE_ACCOUNT: Optional[str] = None
    SNOWFLAKE_USER: Optional[str] = None
    SNOWFLAKE_PASSWORD: Optional[SecretStr] = None
    SNOWFLAKE_DATABASE: Optional[str] = None
    SNOWFLAKE_SCHEMA: Optional[str] = None
    SNOWFLAKE_WAREHOUSE: Optional[str] = None
    SNOWFLAKE_ROLE: Optional[str] = None

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_RUBRIC: int = 3600   # 1 hour

    # Rubric defaults applied when an item is created without a scale
    RUBRIC_DEFAULT_MAX_SCORE: int = Field(default=5, ge=1, le=10)

    @field_validator("API_V1_PREFIX")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("API_V1_PREFIX must start with '/'")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production has required security settings."""
        if self.APP_ENV == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if len(self.SECRET_KEY.get_secret_value()) < 32:
                raise ValueError("SECRET_KEY must be ≥32 characters in production")
            if not self.SNOWFLAKE_ACCOUNT:
                raise ValueError("SNOWFLAKE_ACCOUNT is required in production")
        return self

    @property
    def rate_limits(self) -> dict[str, int]:
        """Request budgets keyed by endpoint class."""
        return {
            "list": self.RATE_LIMIT_LIST,
            "create": self.RATE_LIMIT_CREATE,
            "transition": self.RATE_LIMIT_TRANSITION,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
