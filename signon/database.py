"""SQLite-backed persistence for user accounts."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from .credentials import SetCredential
from .errors import DuplicateEmail, PasswordNotSet, StorageError
from .models import NewUser, User, normalize_email

logger = logging.getLogger("signon.database")

DEFAULT_STORAGE_TIMEOUT = 5.0


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "signon.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


class Database:
    """Simple wrapper around SQLite for persisting users.

    Each call opens its own connection, so one instance can be shared by
    worker threads.  Email uniqueness is enforced by the ``UNIQUE`` column
    constraint; there is no lookup before an insert.
    """

    def __init__(self, path: Path, *, timeout: float = DEFAULT_STORAGE_TIMEOUT) -> None:
        _ensure_directory(path)
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            # IMMEDIATE takes the write lock at BEGIN, so racing writers queue
            # on the busy timeout instead of failing with a lock-upgrade deadlock.
            conn = sqlite3.connect(
                self._path,
                timeout=self._timeout,
                isolation_level="IMMEDIATE",
                check_same_thread=False,
            )
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open database at {self._path}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        try:
            with self._connect() as conn:
                conn.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        email TEXT NOT NULL UNIQUE,
                        password_hash TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );
                    """
                )
        except sqlite3.Error as exc:
            raise StorageError("Failed to initialise the users table") from exc

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def insert_user(self, new_user: NewUser) -> User:
        """Persist ``new_user`` and return it with ``id`` and ``created_at`` set."""

        credential = new_user.credential
        if not isinstance(credential, SetCredential):
            raise PasswordNotSet("Refusing to store a credential that has not been hashed")

        email = normalize_email(new_user.email)
        created_at = _current_timestamp()

        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "INSERT INTO users (email, password_hash, created_at) VALUES (?, ?, ?)",
                    (email, credential.hash, _serialize_datetime(created_at)),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmail("A user with that email already exists") from exc
        except sqlite3.Error as exc:
            raise StorageError("Failed to insert user") from exc

        logger.debug("Inserted user %s", user_id)
        return User(id=int(user_id), email=email, created_at=created_at, credential=credential)

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE email = ?", (normalize_email(email),))

    def get_user(self, user_id: int) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def list_users(self) -> List[User]:
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        except sqlite3.Error as exc:
            raise StorageError("Failed to list users") from exc
        return [self._row_to_user(row) for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _fetch_one(self, query: str, params: tuple) -> Optional[User]:
        try:
            with self._connect() as conn:
                row = conn.execute(query, params).fetchone()
        except sqlite3.Error as exc:
            raise StorageError("Failed to load user") from exc
        if row is None:
            return None
        return self._row_to_user(row)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            email=str(row["email"]),
            created_at=_parse_datetime(str(row["created_at"])),
            credential=SetCredential(hash=str(row["password_hash"])),
        )


__all__ = ["Database", "DEFAULT_STORAGE_TIMEOUT", "resolve_database_path"]
