"""
FastAPI Dependency Injection configuration for the Patient Service API.

Architecture Flow:
    API Layer (Routers)
         ↓ Depends()
    Service Layer (PatientService)
         ↓ Injected
    Repository Layer (PatientRepository)
         ↓ Injected
    Database (SQLite Connection)

Usage in Routers:
    from core.dependencies import get_patient_service

    @router.get("/{patient_id}")
    async def get_patient(
        patient_id: int,
        patient_service: PatientService = Depends(get_patient_service)
    ):
        return patient_service.get_patient(patient_id)

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_database] = lambda: test_database
"""
import logging
from typing import Optional

from core.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# DATABASE DEPENDENCY
# =============================================================================

# Imported lazily to avoid circular imports with repositories
_database_instance: Optional["Database"] = None


def get_database() -> "Database":
    """
    Get the process-wide database instance, creating it on first use.

    Returns:
        Database: The configured database instance.
    """
    global _database_instance

    if _database_instance is None:
        from repositories.base import Database

        logger.info(f"Initializing database: {settings.database_path}")
        _database_instance = Database(
            db_path=settings.database_path,
            busy_timeout=settings.patient_svc_db_busy_timeout
        )

    return _database_instance


# =============================================================================
# REPOSITORY DEPENDENCIES
# =============================================================================

def get_patient_repository() -> "PatientRepository":
    """
    Get a PatientRepository instance with database injected.

    Returns:
        PatientRepository: Repository for patient data access.
    """
    from repositories import PatientRepository

    return PatientRepository(db=get_database())


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================

def get_patient_service() -> "PatientService":
    """
    Get a PatientService instance with repository injected.

    Returns:
        PatientService: Service for patient operations.
    """
    from services import PatientService

    return PatientService(patient_repository=get_patient_repository())
