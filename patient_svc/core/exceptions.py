"""
Shared exception classes and error handling utilities for the Patient Service API.

This module provides:
- Custom exception hierarchy for domain-specific errors
- Consistent error response formatting
- Exception handlers for FastAPI integration

Usage:
    from core.exceptions import PatientNotFoundError, DuplicateDocumentError

    # In service layer - raise domain exceptions
    raise PatientNotFoundError(patient_id=42)

    # In FastAPI - register handlers via setup_exception_handlers(app)
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTION CLASSES
# =============================================================================

class PatientServiceError(Exception):
    """
    Base exception for all Patient Service domain errors.

    All custom exceptions should inherit from this class.
    Provides consistent error structure with status code and detail message.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An unexpected error occurred"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ):
        """
        Initialize the exception.

        Args:
            detail: Human-readable error message. Uses class default if not provided.
            status_code: HTTP status code. Uses class default if not provided.
            **kwargs: Additional context to include in error response.
        """
        self.detail = detail or self.__class__.detail
        self.status_code = status_code or self.__class__.status_code
        self.context = kwargs
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result = {"detail": self.detail}
        if self.context:
            result["context"] = self.context
        return result


# =============================================================================
# PATIENT EXCEPTIONS
# =============================================================================

class PatientNotFoundError(PatientServiceError):
    """Raised when a patient id does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Patient not found"

    def __init__(self, patient_id: Optional[int] = None, **kwargs: Any):
        detail = f"Patient {patient_id} not found" if patient_id is not None else self.detail
        super().__init__(detail=detail, patient_id=patient_id, **kwargs)


class DuplicateDocumentError(PatientServiceError):
    """Raised when another patient already holds the same document identity."""

    status_code = status.HTTP_409_CONFLICT
    detail = "A patient with this document already exists"

    def __init__(
        self,
        document_type: Optional[str] = None,
        document_number: Optional[str] = None,
        **kwargs: Any
    ):
        if document_type is not None and document_number is not None:
            detail = f"A patient with document {document_type} {document_number} already exists"
        else:
            detail = self.detail
        super().__init__(
            detail=detail,
            document_type=document_type,
            document_number=document_number,
            **kwargs
        )


class PatientValidationError(PatientServiceError):
    """
    Raised when patient fields violate one or more constraints.

    Every violated field is reported, not just the first one.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Patient data failed validation"

    def __init__(self, errors: List[Dict[str, str]], detail: Optional[str] = None):
        self.errors = errors
        super().__init__(detail=detail)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "errors": self.errors}


class MalformedPatchError(PatientServiceError):
    """Raised when a partial-update payload cannot be read as field operations."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Malformed patch document"


class InvalidQueryError(PatientServiceError):
    """Raised when a query parameter cannot be interpreted."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid query parameter"


# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================

class DatabaseError(PatientServiceError):
    """Raised when a database operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Database operation failed"

    def __init__(self, operation: Optional[str] = None, **kwargs: Any):
        detail = f"Database error during {operation}" if operation else self.detail
        super().__init__(detail=detail, operation=operation, **kwargs)


class ConstraintViolationError(DatabaseError):
    """
    Raised when the unique document index rejects a write.

    The service layer translates this into DuplicateDocumentError; the
    conflict status only matters if it ever escapes untranslated.
    """

    status_code = status.HTTP_409_CONFLICT
    detail = "Unique constraint violated"


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def patient_service_exception_handler(
    request: Request,
    exc: PatientServiceError
) -> JSONResponse:
    """
    Handle PatientServiceError exceptions and return consistent JSON responses.

    Database errors keep their operation name in the log but never in the body.
    """
    logger.warning(
        f"PatientServiceError: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "context": exc.context
        }
    )
    if isinstance(exc, DatabaseError) and exc.status_code >= 500:
        content = {"detail": DatabaseError.detail}
    else:
        content = exc.to_dict()
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Reshape FastAPI's request validation failures into the 400 error body
    used by PatientValidationError.
    """
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) if loc else "body",
            "message": error.get("msg", "Invalid value"),
        })

    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "method": request.method, "errors": errors}
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": PatientValidationError.detail, "errors": errors}
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions with a generic error response.

    Logs the full exception for debugging but returns a safe error message.
    """
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred"}
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance.

    Example:
        app = FastAPI()
        setup_exception_handlers(app)
    """
    app.add_exception_handler(PatientServiceError, patient_service_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
