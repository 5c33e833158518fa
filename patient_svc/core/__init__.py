"""
Core module for application configuration, logging, and shared utilities.

This module provides:
- Settings: Application configuration via pydantic-settings
- Dependency injection: FastAPI Depends() functions for services and repositories
- Exceptions: Domain-specific exception classes with HTTP status codes
- Datetime utilities: UTC-first datetime handling
"""
from core.config import settings, Settings

from core.dependencies import (
    get_database,
    get_patient_repository,
    get_patient_service,
)

from core.exceptions import (
    PatientServiceError,
    PatientNotFoundError,
    DuplicateDocumentError,
    PatientValidationError,
    MalformedPatchError,
    InvalidQueryError,
    DatabaseError,
    ConstraintViolationError,
    setup_exception_handlers,
)

from core.datetime_utils import (
    utc_now,
    to_utc,
    parse_datetime,
    to_db_string,
    from_db_string,
)

__all__ = [
    # Settings
    "settings",
    "Settings",
    # Dependency injection
    "get_database",
    "get_patient_repository",
    "get_patient_service",
    # Exceptions
    "PatientServiceError",
    "PatientNotFoundError",
    "DuplicateDocumentError",
    "PatientValidationError",
    "MalformedPatchError",
    "InvalidQueryError",
    "DatabaseError",
    "ConstraintViolationError",
    "setup_exception_handlers",
    # Datetime utilities
    "utc_now",
    "to_utc",
    "parse_datetime",
    "to_db_string",
    "from_db_string",
]
