"""
Service layer for business logic.
"""
from services.patient_service import PatientService

__all__ = [
    "PatientService",
]
