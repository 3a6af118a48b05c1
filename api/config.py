"""
API configuration settings.
"""

from typing import List, Optional

from pydantic import validator
from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Catalog API"
    api_version: str = "1.0.0"
    api_description: str = (
        "A REST API for a catalog of books and their authors.\n\n"
        "Reads and updates are public. Creating and deleting require an admin API key "
        "in the Authorization header: `Authorization: Bearer your_api_key_here`."
    )
    api_prefix: str = "/api"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Storage Settings
    storage_backend: str = "mongodb"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "book_catalog"

    # Pagination defaults
    default_page: int = 1
    default_limit: int = 3

    # API Key Settings
    api_keys: str = ""  # Comma-separated list of keys granted ROLE_USER
    admin_api_keys: str = ""  # Comma-separated list of keys granted ROLE_ADMIN

    # CORS Settings
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @validator('storage_backend')
    def validate_storage_backend(cls, v):
        """Ensure storage backend is supported."""
        valid_backends = ['mongodb', 'memory']
        if v.lower() not in valid_backends:
            raise ValueError(f'storage_backend must be one of: {valid_backends}')
        return v.lower()

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_api_keys(self) -> List[str]:
        """Parse the comma-separated user keys."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    def get_admin_api_keys(self) -> List[str]:
        """Parse the comma-separated admin keys."""
        return [key.strip() for key in self.admin_api_keys.split(",") if key.strip()]


# Global config instance
config = APIConfig()
