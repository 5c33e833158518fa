"""
Pydantic schemas for patient-related API operations.

All models use camelCase names on the wire (documentType, birthDate, ...)
and accept snake_case names internally.
"""
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, validate_email
from pydantic.alias_generators import to_camel

from models.patient import Patient

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatientCreate(BaseModel):
    """Schema for creating or fully replacing a patient.

    Also used to validate the merged working copy of a partial update, so
    the same constraints apply to create, replace and patch.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "documentType": "CC",
                "documentNumber": "123",
                "firstName": "Ana",
                "lastName": "Gomez",
                "birthDate": "1990-01-01",
                "phoneNumber": "3001234567",
                "email": "ana@example.com",
            }
        },
    )

    document_type: str = Field(..., max_length=10, description="Document type, e.g. CC, TI, PAS")
    document_number: str = Field(..., max_length=20, description="Document number (unique together with type)")
    first_name: str = Field(..., max_length=80, description="First name")
    last_name: str = Field(..., max_length=80, description="Last name")
    birth_date: date = Field(..., description="Date of birth (YYYY-MM-DD)")
    phone_number: Optional[str] = Field(None, max_length=20, description="Phone number")
    email: Optional[str] = Field(None, max_length=120, description="Email address")

    @field_validator("document_type", "document_number", "first_name", "last_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Field is required")
        return value

    @field_validator("birth_date", mode="before")
    @classmethod
    def iso_birth_date(cls, value: Any) -> Any:
        # Only calendar dates or YYYY-MM-DD strings; no timestamps or datetimes
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                return datetime.strptime(value, "%Y-%m-%d").date()
            except ValueError:
                pass
        raise ValueError("Birth date must be a YYYY-MM-DD date")

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        _, address = validate_email(value)
        if address.lower() != value.strip().lower():
            raise ValueError("Email must be a bare address without a display name")
        return value


class PatientResponse(BaseModel):
    """Schema for a stored patient."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int = Field(..., description="Unique patient identifier")
    document_type: str
    document_number: str
    first_name: str
    last_name: str
    birth_date: date
    phone_number: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime = Field(..., description="UTC timestamp when the patient was created")

    @classmethod
    def from_patient(cls, patient: Patient) -> "PatientResponse":
        return cls.model_validate(asdict(patient))


class PatientPage(BaseModel):
    """One page of a filtered patient listing."""
    model_config = _CAMEL_CONFIG

    total: int = Field(..., description="Number of patients matching the filters")
    page: int
    page_size: int
    items: List[PatientResponse]


class PatchOperation(BaseModel):
    """A single JSON Patch operation (RFC 6902 subset)."""

    op: Literal["add", "replace", "remove"]
    path: str
    value: Any = None
