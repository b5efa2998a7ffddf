from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from signon.credentials import PasswordHasher, SetCredential, UnsetCredential
from signon.database import Database, resolve_database_path
from signon.errors import DuplicateEmail, PasswordNotSet, StorageError
from signon.models import NewUser


def _new_user(hasher: PasswordHasher, email: str, password: str = "Sup3rSecurePwd!") -> NewUser:
    return NewUser(email=email, credential=UnsetCredential(password).set(hasher))


def test_insert_assigns_id_and_timestamp(database: Database, hasher: PasswordHasher) -> None:
    user = database.insert_user(_new_user(hasher, "owner@example.com"))

    assert user.id > 0
    assert user.created_at.tzinfo is not None
    assert user.credential.verify("Sup3rSecurePwd!", hasher)


def test_find_by_email_is_case_insensitive(database: Database, hasher: PasswordHasher) -> None:
    created = database.insert_user(_new_user(hasher, "  Owner@Example.COM "))

    assert created.email == "owner@example.com"
    found = database.find_user_by_email("OWNER@example.com")
    assert found is not None
    assert found.id == created.id
    assert found.created_at == created.created_at
    assert found.credential.verify("Sup3rSecurePwd!", hasher)


def test_find_unknown_email_returns_none(database: Database) -> None:
    assert database.find_user_by_email("nobody@example.com") is None


def test_duplicate_email_is_rejected(database: Database, hasher: PasswordHasher) -> None:
    database.insert_user(_new_user(hasher, "dup@example.com"))

    with pytest.raises(DuplicateEmail):
        database.insert_user(_new_user(hasher, "DUP@example.com", "another-password"))

    assert len(database.list_users()) == 1


def test_unset_credential_cannot_be_stored(database: Database) -> None:
    with pytest.raises(PasswordNotSet):
        database.insert_user(NewUser(email="a@x.com", credential=UnsetCredential("secret1")))

    assert database.find_user_by_email("a@x.com") is None


def test_plaintext_is_never_persisted(database: Database, hasher: PasswordHasher) -> None:
    database.insert_user(_new_user(hasher, "a@x.com", "plain-text-marker"))

    with sqlite3.connect(database.path) as conn:
        rows = conn.execute("SELECT * FROM users").fetchall()

    assert rows
    assert all("plain-text-marker" not in str(value) for row in rows for value in row)


def test_concurrent_inserts_allow_exactly_one(database: Database, hasher: PasswordHasher) -> None:
    attempts = 8
    credential = UnsetCredential("race-password").set(hasher)

    def attempt(index: int) -> str:
        email = "race@example.com" if index % 2 else "RACE@example.com"
        try:
            database.insert_user(NewUser(email=email, credential=credential))
        except DuplicateEmail:
            return "duplicate"
        return "created"

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        outcomes = list(pool.map(attempt, range(attempts)))

    assert outcomes.count("created") == 1
    assert outcomes.count("duplicate") == attempts - 1


def test_get_user_and_list_users(database: Database, hasher: PasswordHasher) -> None:
    first = database.insert_user(_new_user(hasher, "first@example.com"))
    second = database.insert_user(_new_user(hasher, "second@example.com"))

    assert database.get_user(second.id).email == "second@example.com"
    assert database.get_user(9999) is None
    assert [user.id for user in database.list_users()] == [first.id, second.id]


def test_storage_failures_are_wrapped(tmp_path: Path) -> None:
    uninitialised = Database(tmp_path / "empty.sqlite3")
    credential = SetCredential(hash="$pbkdf2-sha256$1000$c2FsdA$aGFzaA")

    with pytest.raises(StorageError):
        uninitialised.find_user_by_email("a@x.com")
    with pytest.raises(StorageError):
        uninitialised.insert_user(NewUser(email="a@x.com", credential=credential))


def test_initialize_is_idempotent(database: Database, hasher: PasswordHasher) -> None:
    database.insert_user(_new_user(hasher, "keep@example.com"))
    database.initialize()

    assert database.find_user_by_email("keep@example.com") is not None


def test_resolve_database_path_prefers_explicit_value(tmp_path: Path) -> None:
    explicit = resolve_database_path(str(tmp_path / "custom.sqlite3"))
    default = resolve_database_path(None)

    assert explicit == (tmp_path / "custom.sqlite3").resolve()
    assert default.name == "signon.sqlite3"
