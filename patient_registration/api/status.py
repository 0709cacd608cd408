"""
Storage status endpoint
"""
from fastapi import APIRouter, Request

from patient_registration.database.schemas import RegistryStatus
from patient_registration.api.utils import get_repository

router = APIRouter()


@router.get("/status", response_model=RegistryStatus)
async def get_status(request: Request):
    """
    Which store is in use, so the UI can show the local storage notice
    """
    repository = get_repository(request)
    return RegistryStatus(
        mode=repository.mode,
        using_fallback=repository.using_fallback,
        patient_count=len(repository.patients),
    )
