"""
Database package for the typing engine.
This package contains the SQLite storage used for durable session history.
"""
from .database_manager import DatabaseManager
from .exceptions import (
    ConstraintError,
    DatabaseError,
    DBConnectionError,
    IntegrityError,
    SchemaError,
)

__all__ = [
    "DatabaseManager",
    "DatabaseError",
    "DBConnectionError",
    "ConstraintError",
    "IntegrityError",
    "SchemaError",
]
