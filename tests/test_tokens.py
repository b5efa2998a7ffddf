from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from signon.errors import TokenExpired, TokenInvalid, TokenMalformed
from signon.tokens import TokenIssuer

from conftest import TEST_ISSUER, TEST_SECRET, FakeClock


def _flip_signature(token: str) -> str:
    header, payload, signature = token.split(".")
    replacement = "A" if signature[0] != "A" else "B"
    return ".".join([header, payload, replacement + signature[1:]])


def test_mint_then_validate_returns_claims(issuer: TokenIssuer, clock: FakeClock) -> None:
    token = issuer.mint(42, "a@x.com", timedelta(hours=1))

    claims = issuer.validate(token)

    assert claims.sub == 42
    assert claims.email == "a@x.com"
    assert claims.iss == TEST_ISSUER
    assert claims.iat == clock.now
    assert claims.exp == clock.now + 3600


def test_token_is_a_compact_hs256_jwt(issuer: TokenIssuer) -> None:
    token = issuer.mint(7, "b@x.com", timedelta(minutes=5))

    assert token.count(".") == 2
    assert jwt.get_unverified_header(token)["alg"] == "HS256"
    payload = jwt.decode(token, options={"verify_signature": False})
    assert set(payload) == {"sub", "email", "iss", "iat", "exp"}
    assert payload["sub"] == "7"


def test_mint_is_deterministic_for_same_clock(issuer: TokenIssuer) -> None:
    first = issuer.mint(1, "a@x.com", timedelta(hours=24))
    second = issuer.mint(1, "a@x.com", timedelta(hours=24))

    assert first == second


def test_tokens_differ_once_clock_moves(issuer: TokenIssuer, clock: FakeClock) -> None:
    first = issuer.mint(1, "a@x.com", timedelta(hours=24))
    clock.advance(1)
    second = issuer.mint(1, "a@x.com", timedelta(hours=24))

    assert first != second


def test_tokens_differ_within_the_same_second(issuer: TokenIssuer, clock: FakeClock) -> None:
    first = issuer.mint(1, "a@x.com", timedelta(hours=24))
    clock.advance(0.25)
    second = issuer.mint(1, "a@x.com", timedelta(hours=24))

    assert first != second
    assert issuer.validate(second).iat == clock.now


def test_expired_token_is_rejected(issuer: TokenIssuer, clock: FakeClock) -> None:
    token = issuer.mint(1, "a@x.com", timedelta(seconds=30))
    clock.advance(31)

    with pytest.raises(TokenExpired):
        issuer.validate(token)


def test_expiry_has_no_leeway(issuer: TokenIssuer, clock: FakeClock) -> None:
    token = issuer.mint(1, "a@x.com", timedelta(seconds=30))

    clock.advance(29)
    assert issuer.validate(token).sub == 1

    clock.advance(1)
    with pytest.raises(TokenExpired):
        issuer.validate(token)


def test_flipped_signature_is_invalid(issuer: TokenIssuer) -> None:
    token = issuer.mint(1, "a@x.com", timedelta(hours=1))

    with pytest.raises(TokenInvalid):
        issuer.validate(_flip_signature(token))


def test_signature_is_checked_before_expiry(issuer: TokenIssuer, clock: FakeClock) -> None:
    token = issuer.mint(1, "a@x.com", timedelta(seconds=1))
    clock.advance(3600)

    with pytest.raises(TokenInvalid):
        issuer.validate(_flip_signature(token))


def test_token_from_another_secret_is_invalid(clock: FakeClock) -> None:
    forger = TokenIssuer("another-secret-that-is-long-enough-000", TEST_ISSUER, clock=clock)
    verifier = TokenIssuer(TEST_SECRET, TEST_ISSUER, clock=clock)

    with pytest.raises(TokenInvalid):
        verifier.validate(forger.mint(1, "a@x.com", timedelta(hours=1)))


def test_token_from_another_issuer_is_invalid(clock: FakeClock) -> None:
    other = TokenIssuer(TEST_SECRET, "someone-else", clock=clock)
    verifier = TokenIssuer(TEST_SECRET, TEST_ISSUER, clock=clock)

    with pytest.raises(TokenInvalid):
        verifier.validate(other.mint(1, "a@x.com", timedelta(hours=1)))


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b", "a.b.c", "....", "Bearer xyz"])
def test_non_token_strings_are_malformed(issuer: TokenIssuer, garbage: str) -> None:
    with pytest.raises(TokenMalformed):
        issuer.validate(garbage)


def test_missing_claims_are_malformed(issuer: TokenIssuer, clock: FakeClock) -> None:
    token = jwt.encode(
        {"sub": "1", "iss": TEST_ISSUER, "iat": int(clock.now), "exp": int(clock.now) + 60},
        TEST_SECRET,
        algorithm="HS256",
    )

    with pytest.raises(TokenMalformed):
        issuer.validate(token)


def test_unsigned_tokens_are_rejected(issuer: TokenIssuer, clock: FakeClock) -> None:
    token = jwt.encode(
        {
            "sub": "1",
            "email": "a@x.com",
            "iss": TEST_ISSUER,
            "iat": int(clock.now),
            "exp": int(clock.now) + 60,
        },
        key=None,
        algorithm="none",
    )

    with pytest.raises(TokenInvalid):
        issuer.validate(token)


def test_rejects_non_positive_ttl(issuer: TokenIssuer) -> None:
    with pytest.raises(ValueError):
        issuer.mint(1, "a@x.com", timedelta(0))


def test_requires_secret_and_issuer() -> None:
    with pytest.raises(ValueError):
        TokenIssuer("", TEST_ISSUER)
    with pytest.raises(ValueError):
        TokenIssuer(TEST_SECRET, "")
