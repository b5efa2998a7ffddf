from __future__ import annotations

from pathlib import Path

import pytest

from signon.credentials import PasswordHasher
from signon.database import Database
from signon.service import AuthService
from signon.tokens import TokenIssuer

TEST_SECRET = "tests-signing-secret-0123456789abcdef"
TEST_ISSUER = "signon-tests"

# Enough work to exercise the real code path without slowing the suite down.
TEST_HASH_ROUNDS = 1_000


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_HASH_ROUNDS)


@pytest.fixture()
def issuer(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, TEST_ISSUER, clock=clock)


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "signon.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def service(database: Database, issuer: TokenIssuer, hasher: PasswordHasher) -> AuthService:
    return AuthService(database, issuer, hasher, timeout=5.0)
