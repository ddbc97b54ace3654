"""Error taxonomy and result type shared by the data layer and services."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar


T = TypeVar('T')


class ErrorCode(str, Enum):
    """Kinds of failure surfaced to callers."""

    STORE_INIT_ERROR = 'STORE_INIT_ERROR'
    MIGRATION_ERROR = 'MIGRATION_ERROR'
    NOT_FOUND = 'NOT_FOUND'
    CONSTRAINT_VIOLATION = 'CONSTRAINT_VIOLATION'
    DECODE_ERROR = 'DECODE_ERROR'
    STORE_ERROR = 'STORE_ERROR'
    TIMEOUT = 'TIMEOUT'
    NETWORK_ERROR = 'NETWORK_ERROR'
    INVALID_RESPONSE = 'INVALID_RESPONSE'
    INVALID_INPUT = 'INVALID_INPUT'
    INVALID_TRANSITION = 'INVALID_TRANSITION'
    IMPORT_ERROR = 'IMPORT_ERROR'


class AppError(Exception):
    """Application error with a machine-readable code and remediation hints."""

    def __init__(self, message: str, code: ErrorCode, suggestions: Optional[List[str]] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.suggestions = suggestions or []
        # HTTP status for errors raised at the network boundary
        self.status_code = status_code

    def __repr__(self):
        return f"AppError({self.code.value}: {self.message})"


@dataclass
class Result(Generic[T]):
    """Outcome of an operation: either data or an AppError."""

    success: bool
    data: Optional[T] = None
    error: Optional[AppError] = field(default=None)

    @classmethod
    def ok(cls, data: Optional[T] = None) -> 'Result[T]':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: AppError) -> 'Result[T]':
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Return the data or raise the carried error."""
        if not self.success:
            raise self.error
        return self.data
