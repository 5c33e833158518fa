"""
Pydantic schemas for API request/response validation.

This module contains all Pydantic models used at API boundaries.
"""
from schemas.patient import (
    PatientCreate,
    PatientResponse,
    PatientPage,
    PatchOperation,
)

__all__ = [
    "PatientCreate",
    "PatientResponse",
    "PatientPage",
    "PatchOperation",
]
