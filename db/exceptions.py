"""
Storage exceptions for the typing engine's durable session history.
"""

import sqlite3


class DatabaseError(Exception):
    """Base class for all storage-related exceptions."""


class DBConnectionError(DatabaseError):
    """Raised when the database cannot be opened or has been closed."""


class ConstraintError(DatabaseError):
    """Raised when a NOT NULL or CHECK constraint fails."""


class IntegrityError(DatabaseError):
    """Raised when a uniqueness or key constraint is violated."""


class SchemaError(DatabaseError):
    """Raised when a table or column the query expects is missing."""


def translate_sqlite_error(exc: sqlite3.Error) -> DatabaseError:
    """Map a raw sqlite3 error onto the storage exception hierarchy."""
    message = str(exc)
    lowered = message.lower()
    if isinstance(exc, sqlite3.IntegrityError):
        if "not null" in lowered or "check constraint" in lowered:
            return ConstraintError(message)
        return IntegrityError(message)
    if isinstance(exc, sqlite3.OperationalError):
        if "no such table" in lowered or "no such column" in lowered:
            return SchemaError(message)
        if "unable to open" in lowered:
            return DBConnectionError(message)
    if isinstance(exc, sqlite3.ProgrammingError) and "closed" in lowered:
        return DBConnectionError(message)
    return DatabaseError(message)
