"""
Embedded SQLite store

- One connection per process, guarded by a lock and driven from a worker thread
- Schema creation and seed rows are idempotent (safe on every start)
- Autocommit: every statement commits on its own, except the seed batch
- Literal values always travel as bound parameters
"""
import asyncio
import logging
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Sequence

from patient_registration.core.errors import StoreOperationFailed, StoreUnavailable

logger = logging.getLogger(__name__)

PATIENT_TABLE = "patient"
PATIENT_COLUMNS = ("id", "name", "age", "gender", "phone_number")

SEED_PATIENTS = [
    (1, "John Doe", 45, "Male", "555-123-4567"),
    (2, "Jane Smith", 32, "Female", "555-987-6543"),
    (3, "Robert Johnson", 56, "Male", "555-456-7890"),
]


def quote_identifier(name: str) -> str:
    """
    Quote a table or column name for SQLite

    Only ever called with names from a fixed allow-list.
    """
    return '"' + name.replace('"', '""') + '"'


class PatientStore:
    """
    Async wrapper around an SQLite connection holding the patient table
    """
    def __init__(self, connection: sqlite3.Connection, path: str):
        self.path = path
        self._conn = connection
        self._lock = Lock()

    @classmethod
    async def open(cls, path: str) -> "PatientStore":
        """
        Connect and initialize the schema

        Raises StoreUnavailable if the engine cannot start; callers treat
        that as fatal.
        """
        logger.info(f"Initializing database at {path}")
        try:
            connection = await asyncio.to_thread(cls._connect, path)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Database initialization error: {e}")
            raise StoreUnavailable(f"Failed to initialize database: {e}") from e

        store = cls(connection, path)
        try:
            seeded = await store.initialize()
        except StoreOperationFailed as e:
            store.close()
            logger.error(f"Database initialization error: {e}")
            raise StoreUnavailable(f"Failed to initialize database: {e}") from e

        logger.info(f"Database initialized successfully (seeded {seeded} rows)")
        return store

    @staticmethod
    def _connect(path: str) -> sqlite3.Connection:
        if path not in (":memory:", ""):
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        # isolation_level=None puts the connection in autocommit mode
        return sqlite3.connect(path, check_same_thread=False, isolation_level=None)

    async def initialize(self) -> int:
        """
        Create the patient table and insert the seed rows if it is empty

        Returns the number of seed rows inserted (0 when data already exists).
        """
        return await asyncio.to_thread(self._initialize)

    def _initialize(self) -> int:
        table = quote_identifier(PATIENT_TABLE)
        columns = ", ".join(quote_identifier(c) for c in PATIENT_COLUMNS)
        placeholders = ", ".join("?" for _ in PATIENT_COLUMNS)

        with self._lock:
            try:
                # LIKE compares ASCII letters case-sensitively, as = does
                self._conn.execute("PRAGMA case_sensitive_like = ON")
                self._conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id INTEGER PRIMARY KEY,
                        name TEXT NOT NULL,
                        age INTEGER NOT NULL,
                        gender TEXT NOT NULL,
                        phone_number TEXT NOT NULL
                    )
                    """
                )
                # Check-then-insert must not race another process seeding the same file
                self._conn.execute("BEGIN IMMEDIATE")
                (count,) = self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
                seeded = 0
                if count == 0:
                    self._conn.executemany(
                        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                        SEED_PATIENTS,
                    )
                    seeded = len(SEED_PATIENTS)
                self._conn.execute("COMMIT")
                return seeded
            except sqlite3.Error as e:
                if self._conn.in_transaction:
                    self._conn.rollback()
                raise StoreOperationFailed(f"Failed to set up patient table: {e}") from e

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """
        Run one statement with bound parameters

        Returns the result rows as dicts in column order (empty for statements
        that produce no rows). Raises StoreOperationFailed on engine errors.
        """
        return await asyncio.to_thread(self._execute, sql, tuple(params))

    def _execute(self, sql: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                if cursor.description is None:
                    return []
                names = [column[0] for column in cursor.description]
                return [dict(zip(names, row)) for row in cursor.fetchall()]
            except sqlite3.Error as e:
                raise StoreOperationFailed(str(e)) from e

    def close(self):
        """Close the connection; later calls fail with StoreOperationFailed"""
        with self._lock:
            self._conn.close()
