"""
Patient registration endpoints
"""
import logging
from typing import List
from fastapi import APIRouter, HTTPException, Request

from patient_registration.core.errors import FallbackWriteFailed, ValidationError
from patient_registration.database.schemas import Patient, PatientInput
from patient_registration.api.utils import get_repository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/patients", response_model=List[Patient])
async def list_patients(request: Request):
    """
    All registered patients, ordered by id

    Served from the database while it is available, otherwise from the
    local fallback mirror.
    """
    repository = get_repository(request)
    return await repository.list_patients()


@router.post("/patients", response_model=Patient)
async def register_patient(patient: PatientInput, request: Request):
    """
    Register a new patient (registration form)

    The patient gets the next sequential id. Returns 422 naming the blank
    fields when the form is incomplete.
    """
    repository = get_repository(request)
    try:
        return await repository.add(patient)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail={"message": str(exc), "fields": exc.fields})
    except FallbackWriteFailed as exc:
        logger.error(f"Failed to add patient: {exc}")
        raise HTTPException(status_code=500, detail=f"Failed to add patient: {exc}")


@router.delete("/patients/{patient_id}")
async def delete_patient(patient_id: int, request: Request):
    """
    Delete a patient by id
    Returns 404 if no such patient exists to ensure DELETE never silently fails
    """
    repository = get_repository(request)
    try:
        removed = await repository.remove(patient_id)
    except FallbackWriteFailed as exc:
        logger.error(f"Failed to delete patient: {exc}")
        raise HTTPException(status_code=500, detail=f"Failed to delete patient: {exc}")
    if not removed:
        raise HTTPException(status_code=404, detail=f"No patient found with id {patient_id}")
    return {"message": "Patient deleted successfully"}
