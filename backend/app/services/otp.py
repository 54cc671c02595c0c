"""One-time numeric codes for password reset."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidToken, PersistenceError, TokenExpired
from app.db.store import RecordStore
from app.models.otp import Otp
from app.models.user import User
from app.services.sessions import as_utc

logger = logging.getLogger(__name__)


class OtpManager:
    def __init__(
        self,
        session: AsyncSession,
        *,
        length: int = 6,
        ttl: timedelta = timedelta(minutes=5),
    ) -> None:
        if not 4 <= length <= 8:
            raise ValueError("OTP length must be between 4 and 8 digits")
        self.session = session
        self._records = RecordStore(session, Otp)
        self.length = length
        self.ttl = ttl

    def generate_code(self) -> str:
        return str(secrets.randbelow(10**self.length)).zfill(self.length)

    async def issue(self, user_id: int) -> str:
        """Replace any pending code for the user with a fresh one and return it."""
        await self._records.destroy(Otp.user_id == user_id)
        code = self.generate_code()
        await self._records.create(
            user_id=user_id,
            token=code,
            expires_at=datetime.now(timezone.utc) + self.ttl,
        )
        logger.info("OTP issued for user_id=%s", user_id)
        return code

    async def consume(self, email: str, code: str) -> int:
        """Validate and burn a code for the user owning `email`; returns that user's id.

        Unknown code → InvalidToken. Expired code → row deleted, TokenExpired.
        """
        try:
            r = await self.session.execute(
                select(Otp).join(User, User.id == Otp.user_id).where(Otp.token == code, User.email == email).limit(1)
            )
        except SQLAlchemyError as e:
            raise PersistenceError("OTP lookup failed") from e
        otp = r.scalars().first()
        if otp is None:
            raise InvalidToken()
        user_id = otp.user_id
        expired = as_utc(otp.expires_at) < datetime.now(timezone.utc)
        await self._records.delete(otp)
        if expired:
            raise TokenExpired()
        return user_id

    async def destroy_all_for_user(self, user_id: int) -> int:
        return await self._records.destroy(Otp.user_id == user_id)

    async def purge_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return await self._records.destroy(Otp.expires_at < now)
