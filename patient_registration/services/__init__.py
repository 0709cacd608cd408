"""
Services: patient repository, refresh polling and the query panel interpreter
"""
from patient_registration.services.repository import PatientRepository, next_patient_id
from patient_registration.services.polling import RefreshPoller
from patient_registration.services.query_interpreter import (
    CompiledQuery,
    QueryInterpreter,
    compile_query,
    normalize_query,
)

__all__ = [
    "PatientRepository",
    "next_patient_id",
    "RefreshPoller",
    "CompiledQuery",
    "QueryInterpreter",
    "compile_query",
    "normalize_query",
]
