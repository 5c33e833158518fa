"""
Repository layer for database access.

This module contains all database access operations, encapsulating SQL and data persistence logic.
"""
from repositories.patient_repository import PatientRepository
from repositories.base import Database

__all__ = [
    "PatientRepository",
    "Database",
]
