"""
Patients router - patient resource endpoints.

This router maps HTTP onto PatientService. It holds no business rules:
validation, duplicate detection and merge all live in the service, and
domain exceptions are turned into responses by the handlers registered in
core.exceptions.

Architecture:
    HTTP Request → Router (this file) → PatientService → PatientRepository → Database

Status codes:
    201 create, 204 replace/patch/delete, 400 validation or malformed patch,
    404 unknown id, 409 duplicate document
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status

from schemas import PatientCreate, PatientPage, PatientResponse
from services import PatientService
from core.datetime_utils import parse_datetime
from core.dependencies import get_patient_service
from core.exceptions import InvalidQueryError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/patients",
    tags=["Patients"],
)


@router.post(
    "",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new patient",
    description="Register a patient. The (documentType, documentNumber) pair must be unique. "
                "Returns the stored patient and its location."
)
async def create_patient(
    request: Request,
    response: Response,
    patient: PatientCreate,
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Create a new patient.

    Raises 409 Conflict if another patient already holds the document pair.
    """
    created = patient_service.create_patient(patient.model_dump())
    response.headers["Location"] = str(request.url_for("get_patient", patient_id=created.id))
    return created


@router.get(
    "",
    response_model=PatientPage,
    summary="List patients",
    description="Page through patients, newest first, optionally filtered by name substring "
                "and exact document number."
)
async def list_patients(
    page: int = Query(1, description="1-indexed page number"),
    page_size: Optional[int] = Query(None, alias="pageSize", description="Items per page (default 10)"),
    name: Optional[str] = Query(None, description="Substring of 'firstName lastName'"),
    document_number: Optional[str] = Query(None, alias="documentNumber", description="Exact document number"),
    patient_service: PatientService = Depends(get_patient_service)
):
    return patient_service.list_patients(
        page=page,
        page_size=page_size,
        name=name,
        document_number=document_number,
    )


@router.get(
    "/filter/created-after",
    response_model=List[PatientResponse],
    summary="List patients created after a date",
    description="Patients whose creation timestamp is strictly after `after` (YYYY-MM-DD or ISO 8601), newest first."
)
async def list_patients_created_after(
    after: str = Query(..., description="Date or datetime, e.g. 2025-01-01"),
    patient_service: PatientService = Depends(get_patient_service)
):
    try:
        parsed = parse_datetime(after)
    except ValueError as e:
        raise InvalidQueryError(detail="Invalid date format. Use YYYY-MM-DD", after=after) from e
    return patient_service.list_patients_created_after(parsed)


@router.get(
    "/{patient_id}",
    name="get_patient",
    response_model=PatientResponse,
    summary="Get a patient",
)
async def get_patient(
    patient_id: int,
    patient_service: PatientService = Depends(get_patient_service)
):
    return patient_service.get_patient(patient_id)


@router.put(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Replace a patient",
    description="Overwrite every mutable field. id and createdAt are kept."
)
async def replace_patient(
    patient_id: int,
    patient: PatientCreate,
    patient_service: PatientService = Depends(get_patient_service)
):
    patient_service.replace_patient(patient_id, patient.model_dump())
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Partially update a patient",
    description="Accepts a JSON Patch list (add/replace/remove) or an object of fields. "
                "Fields not named keep their current values."
)
async def patch_patient(
    patient_id: int,
    patch: Any = Body(
        ...,
        examples=[
            [{"op": "replace", "path": "/firstName", "value": "Ana Maria"}],
            {"firstName": "Ana Maria"},
        ],
    ),
    patient_service: PatientService = Depends(get_patient_service)
):
    patient_service.patch_patient(patient_id, patch)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a patient",
)
async def delete_patient(
    patient_id: int,
    patient_service: PatientService = Depends(get_patient_service)
):
    patient_service.delete_patient(patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
