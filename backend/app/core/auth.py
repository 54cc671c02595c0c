"""Password hashing and JWT issuing/verification."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.errors import InvalidToken, TokenExpired

if TYPE_CHECKING:
    from app.models.user import User
    from app.services.sessions import SessionStore

BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash password with bcrypt. Bytes truncated to 72 (bcrypt limit); no passlib re-encoding."""
    pwd_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(pwd_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify password with bcrypt. Plain password truncated to 72 bytes."""
    plain_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(plain_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


@dataclass(frozen=True)
class UserClaims:
    """Public profile carried inside tokens. Never includes the password."""

    id: int
    name: str
    email: str
    dob: date | None = None
    avatar: str | None = None
    status: int = 1

    @classmethod
    def from_user(cls, user: User) -> UserClaims:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            dob=user.dob,
            avatar=user.avatar,
            status=int(user.status),
        )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> UserClaims:
        try:
            user_id = int(payload["id"])
            dob = payload.get("dob")
            return cls(
                id=user_id,
                name=str(payload.get("name") or ""),
                email=str(payload.get("email") or ""),
                dob=date.fromisoformat(dob) if dob else None,
                avatar=payload.get("avatar"),
                status=int(payload.get("status") or 1),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidToken() from e

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "dob": self.dob.isoformat() if self.dob else None,
            "avatar": self.avatar,
            "status": self.status,
        }


class TokenIssuer:
    """Mints and verifies access/refresh JWTs.

    Access tokens are stateless. Refresh tokens are also written to the session
    store, which is the authority on whether a refresh token is still usable.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        sessions: SessionStore | None = None,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._sessions = sessions
        self._algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _sign(self, claims: UserClaims, secret: str, ttl: timedelta, now: datetime, **extra: Any) -> str:
        payload = claims.to_payload()
        payload.update(extra)
        payload["iat"] = now
        payload["exp"] = now + ttl
        result = jwt.encode(payload, secret, algorithm=self._algorithm)
        return result if isinstance(result, str) else result.decode("utf-8")

    def issue_access_token(self, claims: UserClaims) -> str:
        return self._sign(claims, self._access_secret, self.access_ttl, datetime.now(timezone.utc))

    async def issue_refresh_token(self, claims: UserClaims) -> str:
        """Sign a refresh token and persist its session record (expiry = now + refresh TTL).

        PersistenceError from the store is propagated to the caller.
        """
        if self._sessions is None:
            raise RuntimeError("TokenIssuer has no session store; cannot issue refresh tokens")
        now = datetime.now(timezone.utc)
        # jti keeps two logins within the same second from producing identical tokens
        token = self._sign(claims, self._refresh_secret, self.refresh_ttl, now, jti=secrets.token_hex(8))
        await self._sessions.create(claims.id, token, now + self.refresh_ttl)
        return token

    def verify_access_token(self, token: str) -> UserClaims:
        """Signature and expiry check only; no database lookup."""
        try:
            payload = jwt.decode(token, self._access_secret, algorithms=[self._algorithm])
        except JWTError as e:
            raise InvalidToken() from e
        return UserClaims.from_payload(payload)

    def verify_refresh_token(self, token: str) -> UserClaims:
        """Signature check against the refresh secret.

        The stored record's expiry is checked separately by the session store.
        """
        try:
            payload = jwt.decode(token, self._refresh_secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpired() from e
        except JWTError as e:
            raise InvalidToken() from e
        return UserClaims.from_payload(payload)
