"""
Simple data models

- Patient rows as stored in the embedded database and the fallback mirror
- Registration form input (lenient: blank checks happen in the repository)
- Query panel request/response shapes
- Pydantic provides automatic coercion and validation
"""
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator, ConfigDict


class StoreMode(str, Enum):
    """Which store is authoritative for the current session"""
    DB_BACKED = "db_backed"
    FALLBACK_ONLY = "fallback_only"


class Patient(BaseModel):
    """
    Patient row

    Same shape in the embedded database, the fallback mirror and API responses.
    """
    model_config = ConfigDict(extra="ignore")
    id: int           = Field(..., ge=1, description="Sequential patient identifier (max existing id + 1)")
    name: str         = Field(...,  description="Patient full name")
    age: int          = Field(...,  description="Age in years (0-150 by convention, not enforced)")
    gender: str       = Field(...,  description="Gender (form offers Male, Female, Other)")
    phone_number: str = Field(...,  description="Contact phone number")


class PatientInput(BaseModel):
    """
    Registration form payload

    Every field is optional here so that blank submissions reach the
    repository, which reports all missing fields at once.
    Accepts `phoneNumber` as well as `phone_number`.
    """
    model_config = ConfigDict(populate_by_name=True)
    name: Optional[str]         = Field(None, description="Patient full name")
    age: Optional[int]          = Field(None, description="Age in years")
    gender: Optional[str]       = Field("Male", description="Gender (Male, Female, Other)")
    phone_number: Optional[str] = Field(None, alias="phoneNumber", description="Contact phone number")

    @field_validator("age", mode="before")
    @classmethod
    def blank_age_is_missing(cls, value: Any) -> Any:
        # HTML forms submit an empty string for an untouched number input
        if isinstance(value, str) and not value.strip():
            return None
        return value


class QueryRequest(BaseModel):
    """Free-text query from the query panel"""
    query: str = Field(..., description="SELECT statement on the patient table")


class QueryResult(BaseModel):
    """
    Query panel result

    `columns` follows the key order of the first row and is empty when no
    rows were returned.
    """
    columns: List[str]          = Field(default_factory=list, description="Column names in result order")
    rows: List[Dict[str, Any]]  = Field(default_factory=list, description="Result rows keyed by column name")


class RegistryStatus(BaseModel):
    """Current storage mode, used by the UI to show the fallback notice"""
    mode: StoreMode      = Field(..., description="Authoritative store for this session")
    using_fallback: bool = Field(..., description="True when only the local mirror is in use")
    patient_count: int   = Field(..., description="Number of patients in the current snapshot")
