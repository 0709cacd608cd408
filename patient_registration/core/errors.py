"""
Error taxonomy

- StoreUnavailable is fatal at startup
- StoreOperationFailed degrades the repository to the fallback mirror
- ValidationError and the query errors are shown to the user and recoverable
"""
from typing import Iterable, List


class RegistrationError(Exception):
    """Base class for every error raised by this package"""


class StoreUnavailable(RegistrationError):
    """The embedded database could not be opened or initialized"""


class StoreOperationFailed(RegistrationError):
    """A read or write against the embedded database failed"""


class FallbackWriteFailed(RegistrationError):
    """The local fallback mirror could not be written"""


class ValidationError(RegistrationError):
    """
    One or more required patient fields are blank

    `fields` lists the offending field names in form order.
    """
    def __init__(self, fields: Iterable[str]):
        self.fields: List[str] = list(fields)
        super().__init__(f"Please fill in all fields (missing: {', '.join(self.fields)})")


class QueryError(RegistrationError):
    """Base class for errors local to the query panel"""


class UnsupportedQuery(QueryError):
    """The query text matches none of the recognized shapes"""


class InvalidColumn(QueryError):
    """A column list names something outside the patient table"""
    def __init__(self, invalid: Iterable[str], valid: Iterable[str]):
        self.invalid: List[str] = list(invalid)
        self.valid: List[str] = list(valid)
        super().__init__(
            f"Invalid column(s): {', '.join(self.invalid)}. "
            f"Valid columns are: {', '.join(self.valid)}"
        )


class QueryUnavailable(QueryError):
    """Custom queries need the embedded database, which is not in use"""
