from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from core.security import (
    InvalidToken,
    TokenClaims,
    TokenService,
    generate_one_time_token,
    get_password_hash,
    hash_one_time_token,
    is_expired,
    verify_password,
    verify_password_async,
)
from db_models.user import UserRole

SECRET = "unit-test-secret"


@pytest.fixture
def tokens():
    return TokenService(secret=SECRET, algorithm="HS256", expire_minutes=30)


def test_issue_then_verify_round_trip(tokens):
    issued = tokens.issue(42, UserRole.AUDITOR)
    claims = tokens.verify(issued.token)
    assert isinstance(claims, TokenClaims)
    assert claims.user_id == 42
    assert claims.role == UserRole.AUDITOR
    assert abs((claims.expires_at - issued.expires_at).total_seconds()) < 1


def test_token_always_carries_expiry(tokens):
    issued = tokens.issue(1, UserRole.ADMIN)
    payload = jwt.get_unverified_claims(issued.token)
    assert payload["sub"] == "1"
    assert payload["role"] == "Admin"
    assert payload["type"] == "access"
    assert "exp" in payload and "iat" in payload


def test_expired_token_is_invalid(tokens):
    issued = tokens.issue(1, UserRole.ADMIN, expires_delta=timedelta(seconds=-5))
    assert isinstance(tokens.verify(issued.token), InvalidToken)


def test_tampered_token_is_invalid(tokens):
    token = tokens.issue(1, UserRole.DATA_ENTRY).token
    header, payload, signature = token.split(".")
    forged_payload = jwt.encode(
        {"sub": "1", "role": "SuperAdmin", "type": "access", "exp": 4102444800},
        "attacker-secret",
    ).split(".")[1]
    assert isinstance(tokens.verify(f"{header}.{forged_payload}.{signature}"), InvalidToken)


def test_token_signed_with_other_secret_is_invalid(tokens):
    other = TokenService(secret="someone-else", expire_minutes=30)
    assert isinstance(tokens.verify(other.issue(1, UserRole.ADMIN).token), InvalidToken)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_tokens_do_not_raise(tokens, token):
    assert isinstance(tokens.verify(token), InvalidToken)


def test_token_with_unknown_role_is_invalid(tokens):
    token = jwt.encode(
        {"sub": "1", "role": "Janitor", "type": "access", "exp": 4102444800},
        SECRET,
        algorithm="HS256",
    )
    result = tokens.verify(token)
    assert isinstance(result, InvalidToken)
    assert result.reason == "invalid role"


def test_token_of_other_type_is_invalid(tokens):
    token = jwt.encode(
        {"sub": "1", "role": "Admin", "type": "refresh", "exp": 4102444800},
        SECRET,
        algorithm="HS256",
    )
    assert isinstance(tokens.verify(token), InvalidToken)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenService(secret="")


def test_password_hash_is_salted_and_verifiable():
    first = get_password_hash("pw12345678")
    second = get_password_hash("pw12345678")
    assert first != second
    assert verify_password("pw12345678", first)
    assert not verify_password("pw12345679", first)


def test_verify_password_rejects_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


@pytest.mark.anyio
async def test_verify_password_async_without_stored_hash():
    assert await verify_password_async("anything", None) is False


def test_one_time_tokens_are_random_and_digested():
    token = generate_one_time_token()
    assert token != generate_one_time_token()
    digest = hash_one_time_token(token)
    assert digest == hash_one_time_token(token)
    assert digest != token
    assert len(digest) == 64


def test_is_expired():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert is_expired(None, now)
    assert is_expired(now - timedelta(seconds=1), now)
    assert not is_expired(now + timedelta(minutes=5), now)
    # naive values are read as UTC
    assert not is_expired(datetime(2026, 1, 1, 12, 5), now)
