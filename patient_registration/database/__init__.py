"""
Database module

Contains the data models (schemas), the embedded SQLite store and the
local fallback mirror.
"""

# Export schemas
from patient_registration.database.schemas import (
    StoreMode,
    Patient,
    PatientInput,
    QueryRequest,
    QueryResult,
    RegistryStatus,
)

# Export stores
from patient_registration.database.store import (
    PATIENT_TABLE,
    PATIENT_COLUMNS,
    SEED_PATIENTS,
    PatientStore,
    quote_identifier,
)
from patient_registration.database.storage import LocalFallbackStore

__all__ = [
    # Schemas
    "StoreMode",
    "Patient",
    "PatientInput",
    "QueryRequest",
    "QueryResult",
    "RegistryStatus",
    # Stores
    "PATIENT_TABLE",
    "PATIENT_COLUMNS",
    "SEED_PATIENTS",
    "PatientStore",
    "quote_identifier",
    "LocalFallbackStore",
]
