"""Unit tests for password hashing and the token issuer (access/refresh, secrets, expiry)."""

from datetime import date, datetime, timedelta, timezone

import pytest
from jose import jwt

from app.core.auth import TokenIssuer, UserClaims, hash_password, verify_password
from app.core.errors import InvalidToken, PersistenceError, TokenExpired

CLAIMS = UserClaims(id=42, name="jane", email="u@example.com", dob=date(1990, 5, 1), avatar=None, status=1)


class RecordingSessions:
    """Stands in for SessionStore: remembers created sessions."""

    def __init__(self, fail: bool = False) -> None:
        self.created: list[tuple[int, str, datetime]] = []
        self.fail = fail

    async def create(self, user_id, token, expires_at):
        if self.fail:
            raise PersistenceError("insert failed")
        self.created.append((user_id, token, expires_at))


def make_issuer(sessions=None, **kwargs) -> TokenIssuer:
    return TokenIssuer("access-secret", "refresh-secret", sessions, **kwargs)


def test_hash_password_uses_bcrypt_cost_10():
    hashed = hash_password("Test@123")
    assert hashed != "Test@123"
    assert hashed.startswith("$2b$10$")
    assert verify_password("Test@123", hashed)
    assert not verify_password("Test@124", hashed)


def test_verify_password_rejects_non_bcrypt_value():
    assert verify_password("Test@123", "not-a-hash") is False


def test_access_token_roundtrip_carries_profile_without_password():
    issuer = make_issuer()
    token = issuer.issue_access_token(CLAIMS)
    assert isinstance(token, str)
    assert issuer.verify_access_token(token) == CLAIMS
    payload = jwt.get_unverified_claims(token)
    assert "password" not in payload
    assert payload["dob"] == "1990-05-01"


def test_access_token_expires_after_15_minutes():
    issuer = make_issuer()
    payload = jwt.get_unverified_claims(issuer.issue_access_token(CLAIMS))
    assert payload["exp"] - payload["iat"] == 15 * 60


def test_access_token_with_other_secret_is_rejected():
    token = make_issuer().issue_access_token(CLAIMS)
    other = TokenIssuer("different-secret", "refresh-secret")
    with pytest.raises(InvalidToken):
        other.verify_access_token(token)


def test_expired_access_token_is_rejected():
    issuer = make_issuer(access_ttl=timedelta(seconds=-1))
    token = issuer.issue_access_token(CLAIMS)
    with pytest.raises(InvalidToken):
        issuer.verify_access_token(token)


def test_tampered_access_token_is_rejected():
    issuer = make_issuer()
    token = issuer.issue_access_token(CLAIMS)
    bad_token = token[:-1] + ("x" if token[-1] != "x" else "y")
    with pytest.raises(InvalidToken):
        issuer.verify_access_token(bad_token)


@pytest.mark.asyncio
async def test_refresh_token_is_persisted_with_7_day_expiry():
    sessions = RecordingSessions()
    issuer = make_issuer(sessions)
    before = datetime.now(timezone.utc)
    token = await issuer.issue_refresh_token(CLAIMS)
    assert len(sessions.created) == 1
    user_id, stored, expires_at = sessions.created[0]
    assert user_id == 42
    assert stored == token
    assert before + timedelta(days=7) - timedelta(seconds=5) <= expires_at <= before + timedelta(days=7, seconds=5)
    assert issuer.verify_refresh_token(token) == CLAIMS


@pytest.mark.asyncio
async def test_refresh_tokens_are_unique_per_issue():
    issuer = make_issuer(RecordingSessions())
    first = await issuer.issue_refresh_token(CLAIMS)
    second = await issuer.issue_refresh_token(CLAIMS)
    assert first != second


@pytest.mark.asyncio
async def test_refresh_token_persistence_failure_propagates():
    issuer = make_issuer(RecordingSessions(fail=True))
    with pytest.raises(PersistenceError):
        await issuer.issue_refresh_token(CLAIMS)


@pytest.mark.asyncio
async def test_access_and_refresh_secrets_are_not_interchangeable():
    issuer = make_issuer(RecordingSessions())
    refresh = await issuer.issue_refresh_token(CLAIMS)
    access = issuer.issue_access_token(CLAIMS)
    with pytest.raises(InvalidToken):
        issuer.verify_access_token(refresh)
    with pytest.raises(InvalidToken):
        issuer.verify_refresh_token(access)


def test_expired_refresh_token_signature_raises_token_expired():
    payload = {**CLAIMS.to_payload(), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)}
    token = jwt.encode(payload, "refresh-secret", algorithm="HS256")
    with pytest.raises(TokenExpired):
        make_issuer().verify_refresh_token(token)


def test_token_without_user_id_is_invalid():
    token = jwt.encode(
        {"email": "x@y.com", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "access-secret",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        make_issuer().verify_access_token(token)
