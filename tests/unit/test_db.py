"""
Unit tests for the persistence gateway.
"""

import sqlite3

import pytest

from userservice.db import Database, StorageError, resolve_database_path
from userservice.models import User


class TestResolveDatabasePath:
    """Tests for connection string handling."""

    def test_sqlite_url(self):
        """Test relative and absolute sqlite:/// URLs."""
        assert resolve_database_path("sqlite:///users.db") == "users.db"
        assert resolve_database_path("sqlite:////var/lib/users.db") == "/var/lib/users.db"

    def test_plain_path(self):
        """Test that a bare path is used as-is."""
        assert resolve_database_path("/tmp/users.db") == "/tmp/users.db"

    def test_other_scheme_rejected(self):
        """Test that non-SQLite URLs are rejected."""
        with pytest.raises(ValueError, match="'postgres': only SQLite is supported"):
            resolve_database_path("postgres://user:pw@localhost/users")

    @pytest.mark.parametrize("url", ["sqlite:///:memory:", ":memory:", "sqlite:///"])
    def test_memory_rejected(self, url: str):
        """Test that in-memory and empty paths are rejected."""
        with pytest.raises(ValueError):
            resolve_database_path(url)


class TestBootstrap:
    """Tests for table creation at startup."""

    def test_creates_table(self, database_url: str):
        """Test that bootstrap creates the users table."""
        database = Database(database_url)
        database.bootstrap()

        with sqlite3.connect(database.path) as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'users'"
            ).fetchone()
        assert row is not None

    def test_idempotent(self, database: Database):
        """Test that bootstrapping twice keeps existing rows."""
        with database.session() as users:
            users.insert("A", "a@x.com")

        database.bootstrap()

        with database.session() as users:
            assert len(users.select_all()) == 1

    def test_unreachable_database(self, tmp_path):
        """Test that an unopenable database raises StorageError."""
        database = Database(str(tmp_path / "missing" / "dir" / "users.db"))

        with pytest.raises(StorageError):
            database.bootstrap()


class TestUserGateway:
    """Tests for the five user operations."""

    def test_insert_assigns_id(self, database: Database):
        """Test that insert returns a storage-assigned id."""
        with database.session() as users:
            first = users.insert("A", "a@x.com")
            second = users.insert("B", "b@x.com")

        assert first != second

    def test_select_by_id(self, database: Database):
        """Test reading back a single row."""
        with database.session() as users:
            user_id = users.insert("A", "a@x.com")

        with database.session() as users:
            assert users.select_by_id(user_id) == User(id=user_id, name="A", email="a@x.com")

    def test_select_by_id_missing(self, database: Database):
        """Test that a missing id returns None."""
        with database.session() as users:
            assert users.select_by_id(999) is None

    def test_select_all_empty(self, database: Database):
        """Test that an empty table yields an empty list."""
        with database.session() as users:
            assert users.select_all() == []

    def test_update_by_id(self, database: Database):
        """Test overwriting name and email."""
        with database.session() as users:
            user_id = users.insert("A", "a@x.com")
            users.update_by_id(user_id, "B", "b@x.com")
            assert users.select_by_id(user_id) == User(id=user_id, name="B", email="b@x.com")

    def test_update_missing_is_silent(self, database: Database):
        """Test that updating a missing id writes nothing and doesn't fail."""
        with database.session() as users:
            users.update_by_id(42, "B", "b@x.com")
            assert users.select_all() == []

    def test_delete_by_id_counts(self, database: Database):
        """Test that delete reports the affected row count."""
        with database.session() as users:
            user_id = users.insert("A", "a@x.com")
            assert users.delete_by_id(user_id) == 1
            assert users.delete_by_id(user_id) == 0

    def test_ids_not_reused(self, database: Database):
        """Test that a deleted id is never handed out again."""
        with database.session() as users:
            user_id = users.insert("A", "a@x.com")
            users.delete_by_id(user_id)
            assert users.insert("B", "b@x.com") > user_id


class TestSession:
    """Tests for per-request handle scoping."""

    def test_commit_on_success(self, database: Database):
        """Test that a finished session is visible to the next one."""
        with database.session() as users:
            users.insert("A", "a@x.com")

        with database.session() as users:
            assert len(users.select_all()) == 1

    def test_rollback_on_error(self, database: Database):
        """Test that an exception inside the session discards its writes."""
        with pytest.raises(RuntimeError):
            with database.session() as users:
                users.insert("A", "a@x.com")
                raise RuntimeError("boom")

        with database.session() as users:
            assert users.select_all() == []

    def test_sql_error_becomes_storage_error(self, database_url: str):
        """Test that a query against a missing table raises StorageError."""
        database = Database(database_url)  # Not bootstrapped

        with pytest.raises(StorageError):
            with database.session() as users:
                users.select_all()

    def test_not_null_violation(self, database: Database):
        """Test that constraint violations surface as StorageError."""
        with pytest.raises(StorageError):
            with database.session() as users:
                users.insert(None, "a@x.com")
