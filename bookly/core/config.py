"""
Configuration Management

Centralized configuration management using Pydantic Settings for type safety
and environment variable integration.
"""

from typing import Optional
from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class DatabaseSettings(BaseSettings):
    """Database configuration settings"""

    DB_URL: str = Field(default="sqlite:///./bookly.db")
    DB_ECHO: bool = Field(default=False)
    DB_POOL_PRE_PING: bool = Field(default=True)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @property
    def database_url(self) -> str:
        """Database URL used to build the engine"""
        return self.DB_URL


class LoggingSettings(BaseSettings):
    """Logging configuration settings"""

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text
    LOG_FILE: Optional[str] = Field(default=None)

    # Structured logging
    ENABLE_STRUCTURED_LOGGING: bool = Field(default=True)
    LOG_SQL_QUERIES: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of {valid_levels}')
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        if v.lower() not in ('json', 'text'):
            raise ValueError('Log format must be either json or text')
        return v.lower()


class ReassignmentSettings(BaseSettings):
    """
    Fallback reassignment policy.

    Used when a program has no stored reassignment configuration.
    """

    DEFAULT_RESPONSE_TIME_HOURS: float = Field(default=24, ge=1, le=168)
    URGENT_RESPONSE_TIME_HOURS: float = Field(default=4, ge=0.5, le=48)
    REMINDER_INTERVAL_HOURS: float = Field(default=6, ge=1, le=24)
    MAX_SUGGESTIONS: int = Field(default=5, ge=1, le=20)
    DEFAULT_CAPACITY_TOLERANCE: float = Field(default=10, ge=0, le=100)

    # Listing
    DEFAULT_PAGE_SIZE: int = Field(default=20, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


class Settings(BaseSettings):
    """Main application settings"""

    # Environment
    ENVIRONMENT: str = Field(default="development")

    # Project information
    PROJECT_NAME: str = Field(default="bookly-reassignment")

    # Include all sub-settings
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    reassignment: ReassignmentSettings = ReassignmentSettings()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ['development', 'staging', 'production', 'testing']
        if v not in valid_envs:
            raise ValueError(f'Environment must be one of {valid_envs}')
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()


# Global settings instance
settings = get_settings()
