"""
Configuration module for the registration API.

Loads and validates environment variables using Pydantic settings.
"""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

MEMORY_DATABASE_URL = "memory://"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database ("memory://" keeps records in process memory)
    DATABASE_URL: str = "sqlite:///./vending_registry.db"

    # Security
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Queue provisioning
    QUEUE_ENDPOINT_PREFIX: str = "vending-machine-"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS string into list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def uses_memory_store(self) -> bool:
        return self.DATABASE_URL == MEMORY_DATABASE_URL

    def validate_config(self) -> None:
        """Validate critical configuration values."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL must be set")

        if not self.JWT_SECRET or len(self.JWT_SECRET) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters")

        if self.ACCESS_TOKEN_EXPIRE_MINUTES <= 0:
            raise ValueError("ACCESS_TOKEN_EXPIRE_MINUTES must be positive")

        if self.LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be a standard logging level name")


@lru_cache
def get_settings() -> Settings:
    """Settings from the environment, validated once per process."""
    settings = Settings()
    settings.validate_config()
    return settings
