"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "KBase"
    APP_ENV: Literal["development", "testing", "staging", "production"] = "development"
    DEBUG: bool = True

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="Async SQLAlchemy connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only async drivers are usable with the async engine."""
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must use an async driver "
                "(postgresql+asyncpg:// or sqlite+aiosqlite://)"
            )
        return v

    # ================================
    # JWT Configuration
    # ================================
    JWT_SECRET_KEY: str = Field(..., min_length=32)
    # HS256 = HMAC with SHA-256, symmetric key
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # ================================
    # Google OAuth
    # ================================
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None

    # ================================
    # Metadata Lookups
    # ================================
    # Optional: only used to look up video durations
    YOUTUBE_API_KEY: Optional[str] = None
    NOEMBED_URL: str = "https://noembed.com/embed"
    GOOGLE_BOOKS_API_URL: str = "https://www.googleapis.com/books/v1"
    METADATA_REQUEST_TIMEOUT: int = 10

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Global settings instance
settings = Settings()
