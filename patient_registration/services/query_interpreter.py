"""
Query panel interpreter

Recognizes a small closed set of SELECT statements on the patient table and
turns each into a parameterized SQLite statement.

Shapes, tried in order (first match wins):
1. select * from patient
2. select * from patient where <condition>
   - id <op> <integer>, age <op> <integer> (op is one of = > < >= <=)
   - name = '<text>' or name like '<text>'
   - gender = '<text>'
   - phone_number = '<text>'
3. select <col>, <col>, ... from patient
4. select count(*) from patient

Anything else is rejected. Keywords and field names are matched
case-insensitively; quoted values keep their original case. Table names,
column names and operators in the generated SQL come only from fixed
allow-lists, and literal values are always bound parameters.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from patient_registration.core.errors import (
    InvalidColumn,
    QueryUnavailable,
    UnsupportedQuery,
)
from patient_registration.database.schemas import QueryResult
from patient_registration.database.store import PATIENT_COLUMNS, PATIENT_TABLE, PatientStore, quote_identifier

logger = logging.getLogger(__name__)

VALID_COLUMNS: Tuple[str, ...] = PATIENT_COLUMNS

# SQLite INTEGER is a signed 64-bit value
MAX_INTEGER = 2 ** 63 - 1

_TABLE = quote_identifier(PATIENT_TABLE)

_SQL_OPERATORS = {
    "=": "=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
    "like": "LIKE",
}

_FLAGS = re.IGNORECASE | re.DOTALL

_NUMERIC_OP = r"\s*(?P<op>>=|<=|=|>|<)\s*(?P<value>\d+)"
_QUOTED_VALUE = r"\s*(?P<quote>['\"])(?P<value>[^'\"]+)(?P=quote)"

UNSUPPORTED_WHERE_MESSAGE = (
    "This WHERE clause is not recognized. "
    "Try using conditions on id, name, age, gender, or phone_number."
)
UNSUPPORTED_QUERY_MESSAGE = (
    "Query not supported. Try simple SELECT queries on the patient table "
    "with WHERE conditions using id, name, age, gender, or phone_number."
)
EMPTY_QUERY_MESSAGE = "Please enter a valid SQL query"


@dataclass(frozen=True)
class CompiledQuery:
    """A recognized query: which shape matched and the statement to run"""
    shape: str
    sql: str
    params: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class QueryShape:
    """
    One recognized query form

    `pattern` must match the whole normalized query; `build` turns the match
    into a CompiledQuery or raises a QueryError.
    """
    name: str
    pattern: re.Pattern
    build: Callable[[re.Match], CompiledQuery]


@dataclass(frozen=True)
class WhereCondition:
    """One recognized WHERE condition on a single allow-listed field"""
    field: str
    pattern: re.Pattern
    convert: Callable[[str], Any]


def _integer(text: str) -> int:
    value = int(text)
    if value > MAX_INTEGER:
        raise UnsupportedQuery(f"Integer value {text} is out of range")
    return value


WHERE_CONDITIONS: List[WhereCondition] = [
    WhereCondition("id", re.compile(r"id" + _NUMERIC_OP, _FLAGS), _integer),
    WhereCondition("age", re.compile(r"age" + _NUMERIC_OP, _FLAGS), _integer),
    WhereCondition("name", re.compile(r"name\s*(?P<op>=|\blike\b)" + _QUOTED_VALUE, _FLAGS), str),
    WhereCondition("gender", re.compile(r"gender\s*(?P<op>=)" + _QUOTED_VALUE, _FLAGS), str),
    WhereCondition("phone_number", re.compile(r"phone_number\s*(?P<op>=)" + _QUOTED_VALUE, _FLAGS), str),
]


def _build_select_all(match: re.Match) -> CompiledQuery:
    return CompiledQuery("select_all", f"SELECT * FROM {_TABLE} ORDER BY id ASC")


def _build_select_where(match: re.Match) -> CompiledQuery:
    condition = match.group("condition").strip()
    for candidate in WHERE_CONDITIONS:
        found = candidate.pattern.fullmatch(condition)
        if found is None:
            continue
        operator = _SQL_OPERATORS[found.group("op").lower()]
        value = candidate.convert(found.group("value"))
        sql = (
            f"SELECT * FROM {_TABLE} "
            f"WHERE {quote_identifier(candidate.field)} {operator} ? ORDER BY id ASC"
        )
        return CompiledQuery("select_where", sql, (value,))
    raise UnsupportedQuery(UNSUPPORTED_WHERE_MESSAGE)


def _build_select_columns(match: re.Match) -> CompiledQuery:
    requested = [column.strip() for column in match.group("columns").split(",")]
    if not all(requested):
        raise UnsupportedQuery("Column list contains an empty column name")
    invalid = [column for column in requested if column.lower() not in VALID_COLUMNS]
    if invalid:
        raise InvalidColumn(invalid, VALID_COLUMNS)
    # Result rows are keyed by column name, so each column appears once
    unique = dict.fromkeys(column.lower() for column in requested)
    columns = ", ".join(quote_identifier(column) for column in unique)
    return CompiledQuery("select_columns", f"SELECT {columns} FROM {_TABLE} ORDER BY id ASC")


def _build_count(match: re.Match) -> CompiledQuery:
    return CompiledQuery("count", f"SELECT COUNT(*) AS count FROM {_TABLE}")


QUERY_SHAPES: List[QueryShape] = [
    QueryShape("select_all", re.compile(r"select\s+\*\s+from\s+patient", _FLAGS), _build_select_all),
    QueryShape(
        "select_where",
        re.compile(r"select\s+\*\s+from\s+patient\s+where\s+(?P<condition>.+)", _FLAGS),
        _build_select_where,
    ),
    QueryShape(
        "select_columns",
        re.compile(r"select\s+(?P<columns>[^*]+?)\s+from\s+patient", _FLAGS),
        _build_select_columns,
    ),
    QueryShape("count", re.compile(r"select\s+count\s*\(\s*\*\s*\)\s+from\s+patient", _FLAGS), _build_count),
]


def normalize_query(text: str) -> str:
    """
    Trim whitespace and drop a single trailing semicolon
    """
    query = text.strip()
    if query.endswith(";"):
        query = query[:-1].rstrip()
    return query


def compile_query(text: str) -> CompiledQuery:
    """
    Classify query text and build its parameterized statement

    Raises UnsupportedQuery or InvalidColumn for anything outside the
    recognized shapes.
    """
    query = normalize_query(text or "")
    if not query:
        raise UnsupportedQuery(EMPTY_QUERY_MESSAGE)

    for shape in QUERY_SHAPES:
        match = shape.pattern.fullmatch(query)
        if match is not None:
            return shape.build(match)
    raise UnsupportedQuery(UNSUPPORTED_QUERY_MESSAGE)


class QueryInterpreter:
    """
    Runs query panel input against the embedded database
    """
    def __init__(self, store: Optional[PatientStore]):
        self.store = store

    async def execute(self, text: str) -> QueryResult:
        """
        Compile and run a query

        Raises QueryUnavailable when no database is in use, the compile
        errors for unrecognized input, and StoreOperationFailed when the
        database rejects the statement. Never returns partial results.
        """
        if self.store is None:
            raise QueryUnavailable("Custom queries need the database, which is not available")

        compiled = compile_query(text)
        logger.info(f"Running {compiled.shape} query with {len(compiled.params)} parameter(s)")
        rows = await self.store.execute(compiled.sql, compiled.params)

        columns = list(rows[0].keys()) if rows else []
        return QueryResult(columns=columns, rows=rows)
