"""
Service layer for patient operations.

This service contains the patient resource rules: field validation,
document-identity uniqueness, listing and partial-update merge. It
orchestrates calls to the repository and never touches SQL.

Architecture:
    API Layer (routers) → PatientService → PatientRepository → Database

Uniqueness is enforced twice. The service checks for an existing document
pair before writing so the common conflict gets a clear error, and the
database unique index rejects whatever slips past that check under
concurrency. Both surface as DuplicateDocumentError.

Dependency Injection:
    PatientService receives its repository via constructor injection.
    Use core.dependencies.get_patient_service() in routers with Depends().
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from core.config import DEFAULT_PAGE_SIZE
from core.exceptions import (
    ConstraintViolationError,
    DuplicateDocumentError,
    PatientNotFoundError,
    PatientValidationError,
)
from models.patient import Patient
from repositories import PatientRepository
from schemas import PatientPage, PatientResponse
from services.patient_patch import merge_patch, parse_patch, validate_patient_fields

logger = logging.getLogger(__name__)


class PatientService:
    """
    Service layer for patient operations.

    Every mutating method validates first, then checks document identity,
    then persists.
    """

    def __init__(self, patient_repository: PatientRepository):
        """
        Initialize the patient service.

        Args:
            patient_repository: PatientRepository instance for data access.
                               Injected via core.dependencies.get_patient_service().
        """
        self._repo = patient_repository

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _get_existing(self, patient_id: int) -> Patient:
        patient = self._repo.find_by_id(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        return patient

    @staticmethod
    def _validated(data: Mapping[str, Any]) -> Dict[str, Any]:
        fields, errors = validate_patient_fields(data)
        if errors:
            logger.warning("Patient validation failed", extra={"errors": errors})
            raise PatientValidationError(errors=errors)
        return fields

    def _ensure_document_free(
        self,
        document_type: str,
        document_number: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        if self._repo.exists_by_document(document_type, document_number, exclude_id=exclude_id):
            logger.warning(
                "Document already registered",
                extra={"document_type": document_type, "exclude_id": exclude_id}
            )
            raise DuplicateDocumentError(document_type, document_number)

    def _overwrite(self, existing: Patient, fields: Dict[str, Any]) -> Patient:
        """
        Persist `fields` over `existing`, re-checking the document pair only
        when it changes.
        """
        updated = existing.with_fields(fields)
        if updated.document != existing.document:
            self._ensure_document_free(*updated.document, exclude_id=existing.id)

        try:
            found = self._repo.update(updated)
        except ConstraintViolationError as e:
            logger.warning(
                "Unique index rejected update",
                extra={"patient_id": existing.id}
            )
            raise DuplicateDocumentError(*updated.document) from e

        if not found:
            # Deleted between the lookup and the write
            raise PatientNotFoundError(patient_id=existing.id)
        return updated

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create_patient(self, data: Mapping[str, Any]) -> PatientResponse:
        """
        Create a new patient.

        Args:
            data: Patient fields, snake_case or camelCase keys.

        Returns:
            PatientResponse: The stored patient with id and created_at.

        Raises:
            PatientValidationError: If any field violates its constraints.
            DuplicateDocumentError: If the document pair is already registered.
        """
        fields = self._validated(data)
        self._ensure_document_free(fields["document_type"], fields["document_number"])

        try:
            patient = self._repo.insert(fields)
        except ConstraintViolationError as e:
            logger.warning("Unique index rejected insert")
            raise DuplicateDocumentError(fields["document_type"], fields["document_number"]) from e

        logger.info("Patient created", extra={"patient_id": patient.id})
        return PatientResponse.from_patient(patient)

    def get_patient(self, patient_id: int) -> PatientResponse:
        """
        Get a patient by id.

        Raises:
            PatientNotFoundError: If no patient with this id exists.
        """
        return PatientResponse.from_patient(self._get_existing(patient_id))

    def list_patients(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        name: Optional[str] = None,
        document_number: Optional[str] = None,
    ) -> PatientPage:
        """
        List patients newest first.

        Blank filters are ignored. page and page_size are passed through to
        the repository unchanged.
        """
        if page_size is None:
            page_size = DEFAULT_PAGE_SIZE
        name_filter = name if name and name.strip() else None
        document_filter = document_number if document_number and document_number.strip() else None

        items, total = self._repo.list(
            name_filter=name_filter,
            document_number_filter=document_filter,
            page=page,
            page_size=page_size,
        )
        return PatientPage(
            total=total,
            page=page,
            page_size=page_size,
            items=[PatientResponse.from_patient(p) for p in items],
        )

    def list_patients_created_after(self, after: datetime) -> List[PatientResponse]:
        """Get patients created strictly after `after`, newest first."""
        return [PatientResponse.from_patient(p) for p in self._repo.list_created_after(after)]

    def replace_patient(self, patient_id: int, data: Mapping[str, Any]) -> PatientResponse:
        """
        Replace every mutable field of a patient.

        id and created_at are kept. The duplicate check runs only if the
        document pair changes, and never matches the patient itself.

        Raises:
            PatientNotFoundError, PatientValidationError, DuplicateDocumentError
        """
        existing = self._get_existing(patient_id)
        fields = self._validated(data)
        updated = self._overwrite(existing, fields)

        logger.info("Patient replaced", extra={"patient_id": patient_id})
        return PatientResponse.from_patient(updated)

    def patch_patient(self, patient_id: int, patch_body: Any) -> PatientResponse:
        """
        Apply a sparse patch to a patient.

        The patch is overlaid on a copy of the current record and the merged
        result is validated as a whole, so required fields stay required.

        Args:
            patient_id: Patient to update.
            patch_body: JSON Patch operation list or merge object.

        Raises:
            MalformedPatchError: If the body cannot be read as field operations.
            PatientNotFoundError, PatientValidationError, DuplicateDocumentError
        """
        patch = parse_patch(patch_body)
        existing = self._get_existing(patient_id)

        fields, errors = merge_patch(existing, patch)
        if errors:
            logger.warning(
                "Patched patient failed validation",
                extra={"patient_id": patient_id, "errors": errors}
            )
            raise PatientValidationError(errors=errors)

        updated = self._overwrite(existing, fields)

        logger.info(
            "Patient patched",
            extra={"patient_id": patient_id, "fields": sorted(patch)}
        )
        return PatientResponse.from_patient(updated)

    def delete_patient(self, patient_id: int) -> None:
        """
        Delete a patient.

        Raises:
            PatientNotFoundError: If no patient with this id exists.
        """
        if not self._repo.delete(patient_id):
            raise PatientNotFoundError(patient_id=patient_id)
        logger.info("Patient deleted", extra={"patient_id": patient_id})
