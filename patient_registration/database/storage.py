"""
Local fallback mirror

- Key-value JSON files standing in for browser local storage
- The whole patient list lives under one key and is rewritten on every save
- Reads are lenient (missing or corrupt blob means no patients)
- Writes raise FallbackWriteFailed so callers decide whether loss is acceptable
"""
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from patient_registration.core.errors import FallbackWriteFailed
from patient_registration.database.schemas import Patient

logger = logging.getLogger(__name__)


class LocalFallbackStore:
    """
    Patient list mirror stored as `<directory>/<key>.json`
    """
    def __init__(self, directory: str = "data", key: str = "patients"):
        self.directory = Path(directory)
        self.key = key

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        """
        Return the raw blob stored under key, or None if nothing is stored
        """
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str):
        """
        Replace the blob stored under key
        """
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding="utf-8") as f:
                f.write(value)
        except OSError as e:
            logger.error(f"Failed to write fallback mirror {path}: {e}")
            raise FallbackWriteFailed(f"Failed to save patients locally: {e}") from e

    def load(self) -> List[Patient]:
        """
        Read the mirrored patient list, in stored order
        """
        try:
            raw = self.get_item(self.key)
        except OSError as e:
            logger.error(f"Failed to read fallback mirror: {e}")
            return []
        if raw is None:
            return []

        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing stored patients: {e}")
            return []
        if not isinstance(entries, list):
            logger.error(f"Stored patients under '{self.key}' is not a list, ignoring it")
            return []

        patients = []
        for entry in entries:
            try:
                patients.append(Patient.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed stored patient {entry!r}: {e.error_count()} error(s)")
        return patients

    def save(self, patients: Iterable[Patient]):
        """
        Overwrite the mirror with the full patient list
        """
        payload = json.dumps([patient.model_dump() for patient in patients], indent=2)
        self.set_item(self.key, payload)
