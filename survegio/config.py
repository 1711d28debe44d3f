"""Application configuration management using Pydantic Settings.

This module loads and validates environment variables using Pydantic Settings.
All configuration is loaded from environment variables or a .env file.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy connection string for the survey store
        database_pool_size: Number of connections to maintain in pool
        database_max_overflow: Maximum overflow connections beyond pool_size
        environment: Application environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        sampling_salt: Namespace mixed into the deterministic sampler hash
        rating_scale_min: Lowest rating accepted by range-filtered averages
        rating_scale_max: Highest rating accepted by range-filtered averages
        default_student_percentage: Percentage used when a survey has none
        allowed_origins: List of allowed CORS origins
    """

    # Database Configuration
    database_url: str = Field(
        description="SQLAlchemy database connection string"
    )
    database_pool_size: int = Field(
        default=5,
        description="Number of database connections in pool"
    )
    database_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections beyond pool size"
    )

    # Application Configuration
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    # Evaluation Configuration
    sampling_salt: str = Field(
        default="survegio",
        description="Salt for the deterministic student sampler (changing it re-draws every sample)"
    )
    rating_scale_min: float = Field(
        default=1,
        description="Inclusive lower bound of the rating scale"
    )
    rating_scale_max: float = Field(
        default=5,
        description="Inclusive upper bound of the rating scale"
    )
    default_student_percentage: float = Field(
        default=100,
        ge=0,
        le=100,
        description="Percentage of the population sampled when a survey has no usable value"
    )

    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @model_validator(mode="after")
    def validate_rating_scale(self):
        """Ensure the rating scale bounds are ordered."""
        if self.rating_scale_min >= self.rating_scale_max:
            raise ValueError("rating_scale_min must be lower than rating_scale_max")
        return self

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed_origins string into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton

    Note:
        Uses lru_cache to ensure settings are only loaded once
        and shared across the application.
    """
    return Settings()
