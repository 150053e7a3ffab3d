"""
Configuration management using environment variables.
Holds every setting of the e-library API with validation and defaults.
"""

from typing import Optional
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibraryConfig(BaseSettings):
    """
    Process-wide configuration for the e-library backend.
    Built once at startup and never mutated afterwards.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    environment: str = Field(default="development")

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="elib")

    # Token Configuration
    jwt_secret: str = Field(default="change-me")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_days: int = Field(default=7)

    # Object Storage Configuration
    cloudinary_cloud_name: str = Field(default="")
    cloudinary_api_key: str = Field(default="")
    cloudinary_api_secret: str = Field(default="")
    storage_timeout: float = Field(default=30.0)
    image_folder: str = Field(default="book-covers")
    document_folder: str = Field(default="book-pdfs")

    # Uploads
    upload_dir: str = Field(default="public/data/uploads")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)

    # CORS
    cors_origin: str = Field(default="http://localhost:3000")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        """Ensure the environment name is known."""
        valid_environments = ['development', 'production', 'test']
        if v.lower() not in valid_environments:
            raise ValueError(f'environment must be one of: {valid_environments}')
        return v.lower()

    @field_validator('storage_timeout')
    @classmethod
    def validate_storage_timeout(cls, v):
        """Ensure storage timeout is reasonable."""
        if v <= 0 or v > 300:
            raise ValueError('storage_timeout must be between 0 and 300 seconds')
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

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def get_upload_dir_path(self) -> Path:
        """Get the staging directory as a Path object."""
        return Path(self.upload_dir)

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None
