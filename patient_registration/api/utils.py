"""
Utility functions for API endpoints
"""
from fastapi import Request, HTTPException

from patient_registration.services.query_interpreter import QueryInterpreter
from patient_registration.services.repository import PatientRepository


def get_repository(request: Request) -> PatientRepository:
    """
    Repository created during app startup

    Raises HTTPException with 503 status if startup has not completed
    """
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(status_code=503, detail="Patient storage is not ready yet")
    return repository


def get_interpreter(request: Request) -> QueryInterpreter:
    """
    Query interpreter created during app startup
    """
    interpreter = getattr(request.app.state, "interpreter", None)
    if interpreter is None:
        raise HTTPException(status_code=503, detail="Query panel is not ready yet")
    return interpreter
