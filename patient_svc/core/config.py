"""
Configuration module for the Patient Service API.
Uses Pydantic BaseSettings for validation - app fails fast on malformed config.
"""
import logging
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with validation.
    Values are read from the environment (or a local .env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database Configuration
    patient_svc_db_dir: str = Field(default="data", description="Database directory")
    patient_svc_db_file: str = Field(default="patients.db", description="Database filename")
    patient_svc_db_busy_timeout: int = Field(default=5000, description="SQLite busy timeout in milliseconds")

    # API Configuration
    patient_svc_host: str = Field(default="0.0.0.0", description="API host")
    patient_svc_port: int = Field(default=8000, description="API port")
    patient_svc_reload: bool = Field(default=False, description="Enable hot reload")

    # Listing Configuration
    patient_svc_default_page_size: int = Field(
        default=10,
        description="Page size used when a list request does not specify one",
    )

    @model_validator(mode="after")
    def validate_listing(self) -> "Settings":
        """Warn about listing defaults that would always produce empty pages."""
        if self.patient_svc_default_page_size < 1:
            logger.warning(
                "PATIENT_SVC_DEFAULT_PAGE_SIZE is below 1 - "
                "list requests without pageSize will return no items"
            )
        return self

    @property
    def database_path(self) -> str:
        """Get the full database path."""
        return str(Path(self.patient_svc_db_dir) / self.patient_svc_db_file)

    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        Path(self.patient_svc_db_dir).mkdir(parents=True, exist_ok=True)


# Create global settings instance
settings = Settings()

# Ensure directories exist on import
settings.ensure_directories()

# Module-level shortcuts used across the service
DATABASE_DIR = settings.patient_svc_db_dir
DATABASE_FILE = settings.patient_svc_db_file
DATABASE_PATH = settings.database_path
DATABASE_BUSY_TIMEOUT = settings.patient_svc_db_busy_timeout

API_HOST = settings.patient_svc_host
API_PORT = settings.patient_svc_port
API_RELOAD = settings.patient_svc_reload

DEFAULT_PAGE_SIZE = settings.patient_svc_default_page_size
