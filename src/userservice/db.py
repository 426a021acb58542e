"""
=============================================================================
PERSISTENCE GATEWAY
=============================================================================

All storage access goes through this module. It has two layers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Database                                                           │
    │    knows WHERE the data lives (connection string)                   │
    │    bootstrap()  → create the users table once at startup            │
    │    session()    → open a fresh handle for ONE request               │
    │                                                                     │
    │        with database.session() as users:                            │
    │            users.insert("Ann", "ann@example.com")                   │
    │                 │                                                   │
    │                 ▼                                                   │
    │  UserGateway                                                        │
    │    knows WHAT to run: one SQL statement per operation               │
    │    insert / select_by_id / select_all / update_by_id / delete_by_id │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HANDLE LIFECYCLE
=============================================================================

Every request gets its own SQLite connection, and session() guarantees it
is released on EVERY exit path:

    open ──► yield gateway ──► commit ──► close        (success)
                   │
                   └── exception ──► rollback ──► close ──► re-raise

Nothing is shared between requests, so there is nothing to lock.

=============================================================================
ERRORS
=============================================================================

Any sqlite3.Error (can't open the file, disk full, table missing...) is
re-raised as StorageError. The dispatcher turns that into a 500. Nothing
is retried.

=============================================================================
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from .models import User


logger = logging.getLogger(__name__)


SQLITE_URL_PREFIX = "sqlite:///"

CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL
    )
"""


class StorageError(Exception):
    """Raised when the storage engine can't complete an operation."""


def resolve_database_path(database_url: str) -> str:
    """
    Turn a connection string into a SQLite file path.

    Accepted forms:
        sqlite:///users.db          → "users.db" (relative)
        sqlite:////var/lib/users.db → "/var/lib/users.db"
        /var/lib/users.db           → used as-is

    Raises:
        ValueError: For other URL schemes and for in-memory databases.
                    An in-memory database would vanish after every
                    request, since each request opens its own handle.
    """
    if database_url.startswith(SQLITE_URL_PREFIX):
        path = database_url[len(SQLITE_URL_PREFIX):]
    elif "://" in database_url:
        scheme = database_url.split("://", 1)[0]
        raise ValueError(
            f"Unsupported database scheme '{scheme}': only SQLite is supported, "
            "set DATABASE_URL to sqlite:///path/to/users.db"
        )
    else:
        path = database_url

    if not path or path == ":memory:" or "mode=memory" in path:
        raise ValueError("In-memory databases are not supported")
    return path


class UserGateway:
    """
    Runs the five user operations against one open connection.

    Each method is exactly one SQL statement. Transaction control belongs
    to Database.session(), not to the gateway.
    """

    def __init__(self, connection: sqlite3.Connection):
        self._connection = connection

    def insert(self, name: str, email: str) -> int:
        """Append a row and return the id storage assigned to it."""
        cursor = self._connection.execute(
            "INSERT INTO users (name, email) VALUES (?, ?)",
            (name, email),
        )
        return cursor.lastrowid

    def select_by_id(self, user_id: int) -> Optional[User]:
        """Return the user with this id, or None if there is no such row."""
        row = self._connection.execute(
            "SELECT id, name, email FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        return User.from_row(row) if row else None

    def select_all(self) -> list[User]:
        """Return every user, in whatever order the table scan yields."""
        rows = self._connection.execute("SELECT id, name, email FROM users").fetchall()
        return [User.from_row(row) for row in rows]

    def update_by_id(self, user_id: int, name: str, email: str) -> None:
        """Overwrite name and email. A missing id is not an error."""
        self._connection.execute(
            "UPDATE users SET name = ?, email = ? WHERE id = ?",
            (name, email, user_id),
        )

    def delete_by_id(self, user_id: int) -> int:
        """Delete the row with this id and return how many rows went away."""
        cursor = self._connection.execute(
            "DELETE FROM users WHERE id = ?",
            (user_id,),
        )
        return cursor.rowcount


class Database:
    """
    Source of per-request persistence handles.

    Usage:
        database = Database("sqlite:///users.db")
        database.bootstrap()

        with database.session() as users:
            user = users.select_by_id(7)
    """

    def __init__(self, database_url: str, timeout: float = 5.0):
        """
        Args:
            database_url: Connection string, see resolve_database_path().
            timeout: Seconds SQLite waits on a locked database before
                     giving up with an error.

        Raises:
            ValueError: If the connection string is not usable.
        """
        self.database_url = database_url
        self.path = resolve_database_path(database_url)
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(self.path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open database {self.path}: {e}") from e

    def bootstrap(self) -> None:
        """
        Make sure the users table exists. Safe to call more than once.

        Raises:
            StorageError: If the database can't be opened or written.
        """
        connection = self._connect()
        try:
            with connection:
                connection.execute(CREATE_TABLE_SQL)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to create users table: {e}") from e
        finally:
            connection.close()
        logger.info(f"Users table ready in {self.path}")

    @contextmanager
    def session(self) -> Iterator[UserGateway]:
        """
        Open a handle for one request and release it on every exit path.

        Commits if the block finishes, rolls back if it raises.

        Raises:
            StorageError: If opening, running or committing fails.
        """
        connection = self._connect()
        try:
            yield UserGateway(connection)
            connection.commit()
        except sqlite3.Error as e:
            connection.rollback()
            raise StorageError(str(e)) from e
        except BaseException:
            connection.rollback()
            raise
        finally:
            connection.close()
