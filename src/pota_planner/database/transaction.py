"""Explicit transaction scope for autocommit-mode connections."""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator


logger = logging.getLogger(__name__)


def _rollback(conn: sqlite3.Connection):
    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error as e:
        # The error that triggered the rollback is the one re-raised
        logger.error(f"Rollback failed: {e}")


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed block as one all-or-nothing unit.

    The connection must be opened with isolation_level=None so that
    BEGIN/COMMIT are under our control, DDL included. A COMMIT that
    fails (deferred constraint, busy database) is rolled back too, so
    the connection is never left inside an open transaction.
    """
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        _rollback(conn)
        raise

    try:
        conn.execute("COMMIT")
    except BaseException:
        if conn.in_transaction:
            _rollback(conn)
        raise
