"""
Shared pytest fixtures for the Patient Service tests.

Key patterns:

1. Database Isolation: Each test gets a fresh temporary SQLite database
2. DI Override: app.dependency_overrides injects the test dependencies
3. Service Injection: Services are created with test repositories

Fixture Hierarchy:
    temp_db → patient_repo → patient_service → test_app → client
"""
import os
import tempfile

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Keep the settings-driven data directory out of the working tree.
# This must happen before any config imports.
os.environ.setdefault("PATIENT_SVC_DB_DIR", tempfile.mkdtemp(prefix="patient_svc_"))

from repositories.base import Database
from repositories import PatientRepository
from services.patient_service import PatientService
from core.exceptions import setup_exception_handlers
from core import dependencies as deps


ANA = {
    "documentType": "CC",
    "documentNumber": "123",
    "firstName": "Ana",
    "lastName": "Gomez",
    "birthDate": "1990-01-01",
}


def make_patient(**overrides):
    """Build a valid create payload (camelCase) with optional overrides."""
    payload = dict(ANA)
    payload.update(overrides)
    return payload


@pytest.fixture
def temp_db():
    """
    Create a temporary database for testing.

    A fresh SQLite file per test keeps tests fully isolated.
    """
    fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    db = Database(db_path=db_path)
    yield db

    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def patient_repo(temp_db):
    """Create a PatientRepository with the test database."""
    return PatientRepository(db=temp_db)


@pytest.fixture
def patient_service(patient_repo):
    """Create a PatientService with the test repository."""
    return PatientService(patient_repository=patient_repo)


@pytest.fixture
def test_app(temp_db, patient_repo, patient_service):
    """
    Create a FastAPI test app with dependency overrides.

    Uses the real routers and exception handlers; only the DI providers
    are swapped for test instances.
    """
    from api.routers import health_router, patients_router

    app = FastAPI(title="Patient Service API Test")
    setup_exception_handlers(app)

    app.dependency_overrides[deps.get_database] = lambda: temp_db
    app.dependency_overrides[deps.get_patient_repository] = lambda: patient_repo
    app.dependency_overrides[deps.get_patient_service] = lambda: patient_service

    app.include_router(health_router)
    app.include_router(patients_router)

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """Create a test client for the API."""
    return TestClient(test_app)


@pytest.fixture
def patient_payload():
    """Factory for valid create payloads."""
    return make_patient


@pytest.fixture
def create_patient(client):
    """POST a patient and return the response JSON, asserting 201."""
    def _create(**overrides):
        response = client.post("/api/v1/patients", json=make_patient(**overrides))
        assert response.status_code == 201, response.text
        return response.json()
    return _create
