"""
HTTP layer settings: server binding, CORS and page sizes.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Review API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False

    # Pagination
    default_page_size: int = Field(default=10, ge=1, description="Books and reviews per page")
    detail_reviews_page_size: int = Field(default=5, ge=1, description="Reviews shown inside book detail")
    max_page_size: int = Field(default=100, ge=1, description="Upper bound for the limit parameter")

    # CORS Settings
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: List[str] = ["Authorization", "Content-Type"]

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }


# Global config instance
config = APIConfig()
