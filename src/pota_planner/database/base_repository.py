"""Base class shared by the repositories."""

import logging
import sqlite3
from typing import Callable, Optional, TypeVar

from ..errors import AppError, ErrorCode, Result
from ..utils.timestamps import utc_now
from .connection import ConnectionManager


T = TypeVar('T')


class RowDecodeError(ValueError):
    """A stored row could not be converted back into its entity."""


class BaseRepository:
    """Borrows the shared handle for one operation at a time.

    Subclasses pass each unit of work to _run(), which maps store
    exceptions onto error codes so callers only ever see a Result.
    """

    def __init__(self, manager: ConnectionManager, clock: Optional[Callable] = None):
        """Initialize repository.

        Args:
            manager: Connection manager owning the database handle
            clock: Callable returning the current aware UTC datetime
        """
        self.manager = manager
        self.clock = clock or utc_now
        self.logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    def _run(self, action: str, operation: Callable[[sqlite3.Connection], Result[T]]) -> Result[T]:
        """Acquire the handle and run one operation against it.

        Args:
            action: Description used in error messages, e.g. "upsert park K-0039"
            operation: Unit of work returning a Result

        Returns:
            The operation's Result, or a failure describing what went wrong
        """
        conn_result = self.manager.acquire()
        if not conn_result.success:
            return Result.fail(conn_result.error)

        try:
            return operation(conn_result.data)
        except sqlite3.IntegrityError as e:
            self.logger.warning(f"Constraint violation during {action}: {e}")
            return Result.fail(AppError(
                f"Failed to {action}: {e}",
                ErrorCode.CONSTRAINT_VIOLATION,
                ['Validate the input and try again'],
            ))
        except RowDecodeError as e:
            self.logger.error(f"Corrupt row during {action}: {e}")
            return Result.fail(AppError(
                f"Failed to {action}: stored data could not be decoded ({e})",
                ErrorCode.DECODE_ERROR,
                ['The database may be corrupted or written by a newer version'],
            ))
        except sqlite3.Error as e:
            self.logger.error(f"Database error during {action}: {e}")
            return Result.fail(AppError(
                f"Failed to {action}: {e}",
                ErrorCode.STORE_ERROR,
                ['Check that the database file is accessible'],
            ))

    @staticmethod
    def _not_found(message: str) -> Result:
        return Result.fail(AppError(message, ErrorCode.NOT_FOUND))
