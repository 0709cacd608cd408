"""
Query panel endpoint
"""
import logging
from fastapi import APIRouter, HTTPException, Request

from patient_registration.core.errors import QueryError, QueryUnavailable, StoreOperationFailed
from patient_registration.database.schemas import QueryRequest, QueryResult
from patient_registration.api.utils import get_interpreter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/query", response_model=QueryResult)
async def run_query(query: QueryRequest, request: Request):
    """
    Run a free-text SELECT against the patient table

    Only a fixed set of query shapes is accepted; anything else returns 400
    with a description of what is supported. Failures never affect the
    patient list.
    """
    interpreter = get_interpreter(request)
    try:
        return await interpreter.execute(query.query)
    except QueryUnavailable as exc:
        raise HTTPException(status_code=503, detail=f"Query error: {exc}")
    except QueryError as exc:
        logger.info(f"Rejected query: {exc}")
        raise HTTPException(status_code=400, detail=f"Query error: {exc}")
    except StoreOperationFailed as exc:
        logger.error(f"Query execution error: {exc}")
        raise HTTPException(status_code=500, detail=f"Query error: {exc}")
