"""
Patient repository

Reconciles the embedded database and the local fallback mirror.

- Two modes: DB_BACKED (database authoritative, mirror written through) and
  FALLBACK_ONLY (mirror is the only store)
- The mode starts as DB_BACKED when a store is supplied and moves to
  FALLBACK_ONLY on the first failed read or write; it never moves back
- Every store operation holds one asyncio lock, so a refresh can never
  overwrite a write that is still in flight
"""
import asyncio
import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from patient_registration.core.errors import (
    FallbackWriteFailed,
    StoreOperationFailed,
    ValidationError,
)
from patient_registration.database.schemas import Patient, PatientInput, StoreMode
from patient_registration.database.store import PATIENT_COLUMNS, PATIENT_TABLE, PatientStore, quote_identifier
from patient_registration.database.storage import LocalFallbackStore

logger = logging.getLogger(__name__)

_TABLE = quote_identifier(PATIENT_TABLE)
SELECT_ALL_SQL = f"SELECT * FROM {_TABLE} ORDER BY id ASC"
INSERT_SQL = (
    f"INSERT INTO {_TABLE} ({', '.join(quote_identifier(c) for c in PATIENT_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in PATIENT_COLUMNS)})"
)
DELETE_SQL = f"DELETE FROM {_TABLE} WHERE id = ?"
EXISTS_SQL = f"SELECT 1 FROM {_TABLE} WHERE id = ?"


def next_patient_id(patients: List[Patient]) -> int:
    """
    Next sequential id: one past the largest existing id, or 1 when empty
    """
    if not patients:
        return 1
    return max(patient.id for patient in patients) + 1


def _blank(value) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class PatientRepository:
    def __init__(self, store: Optional[PatientStore], mirror: LocalFallbackStore):
        self._store = store
        self._mirror = mirror
        self._mode = StoreMode.DB_BACKED if store is not None else StoreMode.FALLBACK_ONLY
        self._patients: List[Patient] = []
        self._lock = asyncio.Lock()

    @property
    def mode(self) -> StoreMode:
        return self._mode

    @property
    def using_fallback(self) -> bool:
        return self._mode is StoreMode.FALLBACK_ONLY

    @property
    def patients(self) -> List[Patient]:
        """Copy of the in-memory snapshot, sorted by id"""
        return list(self._patients)

    def _fall_back(self, error: Exception):
        if self._mode is StoreMode.FALLBACK_ONLY:
            return
        logger.warning(f"Database operation failed, switching to local fallback storage: {error}")
        self._mode = StoreMode.FALLBACK_ONLY

    def _set_snapshot(self, patients: List[Patient]):
        self._patients = sorted(patients, key=lambda patient: patient.id)

    def _write_through(self):
        # Mirror is a backup while the database is authoritative
        try:
            self._mirror.save(self._patients)
        except FallbackWriteFailed as e:
            logger.warning(f"Could not update local backup of patients: {e}")

    def _save_locally(self, patients: List[Patient]):
        # Mirror is the only store here; write failures propagate
        ordered = sorted(patients, key=lambda patient: patient.id)
        self._mirror.save(ordered)
        self._patients = ordered

    async def _read_store(self) -> List[Patient]:
        rows = await self._store.execute(SELECT_ALL_SQL)
        try:
            return [Patient.model_validate(row) for row in rows]
        except PydanticValidationError as e:
            # Rows written by another client may not satisfy the model
            raise StoreOperationFailed(
                f"Database returned an invalid patient row: {e.error_count()} error(s)"
            ) from e

    async def _reload_from_store(self):
        self._set_snapshot(await self._read_store())
        self._write_through()

    async def load(self) -> List[Patient]:
        """
        Startup read

        Serves the mirror immediately, then replaces it with the database
        contents when the database is in use.
        """
        async with self._lock:
            self._set_snapshot(self._mirror.load())
            if self._mode is StoreMode.DB_BACKED:
                logger.info("Loading patients from database...")
                try:
                    await self._reload_from_store()
                except StoreOperationFailed as e:
                    logger.error(f"Failed to load patients from DB: {e}")
                    self._fall_back(e)
            else:
                logger.info("Database connection not available, using local storage")
            return self.patients

    async def list_patients(self) -> List[Patient]:
        """
        All patients, sorted by id ascending
        """
        async with self._lock:
            if self._mode is StoreMode.DB_BACKED:
                try:
                    await self._reload_from_store()
                    return self.patients
                except StoreOperationFailed as e:
                    self._fall_back(e)
            self._set_snapshot(self._mirror.load())
            return self.patients

    async def add(self, patient_input: PatientInput) -> Patient:
        """
        Register a patient

        Raises ValidationError naming every blank required field. The id is
        assigned from the in-memory snapshot.
        """
        missing = [
            field for field in ("name", "age", "gender", "phone_number")
            if _blank(getattr(patient_input, field))
        ]
        if missing:
            raise ValidationError(missing)

        async with self._lock:
            patient = Patient(
                id=next_patient_id(self._patients),
                name=patient_input.name.strip(),
                age=patient_input.age,
                gender=patient_input.gender.strip(),
                phone_number=patient_input.phone_number.strip(),
            )

            if self._mode is StoreMode.DB_BACKED:
                try:
                    await self._store.execute(
                        INSERT_SQL,
                        (patient.id, patient.name, patient.age, patient.gender, patient.phone_number),
                    )
                    await self._reload_from_store()
                    logger.info(f"Added patient {patient.id}")
                    return patient
                except StoreOperationFailed as e:
                    logger.error(f"Failed to add patient: {e}")
                    self._fall_back(e)

            self._save_locally(self._patients + [patient])
            logger.info(f"Added patient {patient.id} to local storage")
            return patient

    async def remove(self, patient_id: int) -> bool:
        """
        Delete a patient by id

        Returns False, changing nothing, when no patient has that id.
        """
        async with self._lock:
            if self._mode is StoreMode.DB_BACKED:
                try:
                    if not await self._store.execute(EXISTS_SQL, (patient_id,)):
                        return False
                    await self._store.execute(DELETE_SQL, (patient_id,))
                    await self._reload_from_store()
                    logger.info(f"Deleted patient {patient_id}")
                    return True
                except StoreOperationFailed as e:
                    logger.error(f"Failed to delete patient: {e}")
                    self._fall_back(e)

            if all(p.id != patient_id for p in self._patients):
                return False
            self._save_locally([p for p in self._patients if p.id != patient_id])
            logger.info(f"Deleted patient {patient_id} from local storage")
            return True

    async def refresh(self) -> bool:
        """
        Re-read the full list from the database

        Skips (returns False) when another store operation is in flight or
        the database is no longer in use.
        """
        if self._mode is not StoreMode.DB_BACKED or self._lock.locked():
            return False
        async with self._lock:
            if self._mode is not StoreMode.DB_BACKED:
                return False
            try:
                await self._reload_from_store()
            except StoreOperationFailed as e:
                logger.error(f"Error checking for changes: {e}")
                self._fall_back(e)
                return False
            return True
