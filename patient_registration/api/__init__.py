# API routes
from fastapi import APIRouter
from patient_registration.api.patients import router as patients_router
from patient_registration.api.query import router as query_router
from patient_registration.api.status import router as status_router

# Combine all routers
router = APIRouter()
router.include_router(patients_router)
router.include_router(query_router)
router.include_router(status_router)

__all__ = ["router"]
