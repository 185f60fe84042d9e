"""Tests for DatabaseManager and storage error translation."""

import sqlite3

import pytest

from db.database_manager import DatabaseManager
from db.exceptions import (
    ConstraintError,
    DatabaseError,
    DBConnectionError,
    IntegrityError,
    SchemaError,
    translate_sqlite_error,
)


class TestDatabaseManager:
    def test_initialize_tables(self, db_manager):
        db_manager.initialize_tables()
        assert db_manager.table_exists("session_records")
        assert "session_records" in db_manager.list_tables()

    def test_initialize_is_idempotent(self, db_manager):
        db_manager.initialize_tables()
        db_manager.initialize_tables()
        assert db_manager.list_tables().count("session_records") == 1

    def test_execute_and_fetch(self, db_manager):
        db_manager.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT NOT NULL)", commit=True)
        db_manager.execute("INSERT INTO t (id, name) VALUES (?, ?)", (1, "one"), commit=True)
        db_manager.execute("INSERT INTO t (id, name) VALUES (?, ?)", (2, "two"), commit=True)

        row = db_manager.fetchone("SELECT name FROM t WHERE id = ?", (2,))
        assert row["name"] == "two"
        assert db_manager.fetchone("SELECT name FROM t WHERE id = ?", (3,)) is None
        assert [r["id"] for r in db_manager.fetchall("SELECT id FROM t ORDER BY id")] == [1, 2]

    def test_missing_table_is_schema_error(self, db_manager):
        with pytest.raises(SchemaError):
            db_manager.fetchall("SELECT * FROM nowhere")

    def test_unique_violation_is_integrity_error(self, db_manager):
        db_manager.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)", commit=True)
        db_manager.execute("INSERT INTO t (id) VALUES (1)", commit=True)
        with pytest.raises(IntegrityError):
            db_manager.execute("INSERT INTO t (id) VALUES (1)", commit=True)

    def test_not_null_violation_is_constraint_error(self, db_manager):
        db_manager.execute("CREATE TABLE t (name TEXT NOT NULL)", commit=True)
        with pytest.raises(ConstraintError):
            db_manager.execute("INSERT INTO t (name) VALUES (NULL)", commit=True)

    def test_closed_connection(self):
        manager = DatabaseManager()
        manager.close()
        manager.close()
        with pytest.raises(DBConnectionError):
            manager.fetchall("SELECT 1")

    def test_context_manager_closes(self, tmp_path):
        with DatabaseManager(str(tmp_path / "t.db")) as manager:
            manager.initialize_tables()
        with pytest.raises(DBConnectionError):
            manager.execute("SELECT 1")

    def test_unopenable_path(self, tmp_path):
        with pytest.raises(DBConnectionError):
            DatabaseManager(str(tmp_path / "missing" / "dir" / "t.db"))


@pytest.mark.parametrize("error, expected", [
    (sqlite3.IntegrityError("UNIQUE constraint failed: t.id"), IntegrityError),
    (sqlite3.IntegrityError("NOT NULL constraint failed: t.name"), ConstraintError),
    (sqlite3.IntegrityError("CHECK constraint failed: accuracy"), ConstraintError),
    (sqlite3.OperationalError("no such table: t"), SchemaError),
    (sqlite3.OperationalError("no such column: x"), SchemaError),
    (sqlite3.OperationalError("unable to open database file"), DBConnectionError),
    (sqlite3.ProgrammingError("Cannot operate on a closed database."), DBConnectionError),
    (sqlite3.OperationalError("database is locked"), DatabaseError),
])
def test_translate_sqlite_error(error, expected):
    translated = translate_sqlite_error(error)
    assert type(translated) is expected
    assert str(error) in str(translated)
