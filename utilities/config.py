"""
Configuration management using environment variables.
Handles database, security and logging settings with validation and defaults.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pathlib import Path


class AppConfig(BaseSettings):
    """
    Configuration class for the book review service.
    Uses pydantic BaseSettings for environment variable management.
    """

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="book_reviews")

    # Session token Configuration
    secret_key: str = Field(default="change-me-in-production")
    algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24 * 30)

    # Password hashing
    password_hash_iterations: int = Field(default=260000)

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    # Development/Testing
    debug: bool = Field(default=False)
    test_mode: bool = Field(default=False)

    @field_validator('access_token_expire_minutes')
    @classmethod
    def validate_token_lifetime(cls, v):
        """Ensure tokens expire at some point."""
        if v < 1:
            raise ValueError('access_token_expire_minutes must be at least 1')
        return v

    @field_validator('password_hash_iterations')
    @classmethod
    def validate_iterations(cls, v):
        """Ensure the key derivation is not trivially cheap."""
        if v < 1000:
            raise ValueError('password_hash_iterations must be at least 1000')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra fields from .env
    }

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug and not self.test_mode


# Global configuration instance
config = AppConfig()
