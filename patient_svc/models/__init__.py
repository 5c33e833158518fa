"""
Domain models for the patient service.
"""
from models.patient import Patient, MUTABLE_FIELDS

__all__ = ["Patient", "MUTABLE_FIELDS"]
