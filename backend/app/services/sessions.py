"""Refresh-token session store.

A session is either present (active until its stored expiry) or absent; deleting
the row is the only way to revoke it.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.store import RecordStore
from app.models.refresh_token import RefreshToken


def as_utc(value: datetime) -> datetime:
    """Stored timestamps come back naive from some drivers (SQLite); they are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionStore:
    def __init__(self, session: AsyncSession) -> None:
        self._records = RecordStore(session, RefreshToken)

    async def create(self, user_id: int, token: str, expires_at: datetime) -> RefreshToken:
        return await self._records.create(user_id=user_id, token=token, expires_at=expires_at)

    async def find_by_token(self, token: str) -> RefreshToken | None:
        return await self._records.find_one(RefreshToken.token == token)

    @staticmethod
    def is_expired(record: RefreshToken, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(record.expires_at) < now

    async def destroy(self, token: str) -> int:
        return await self._records.destroy(RefreshToken.token == token)

    async def destroy_all_for_user(self, user_id: int) -> int:
        return await self._records.destroy(RefreshToken.user_id == user_id)

    async def purge_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return await self._records.destroy(RefreshToken.expires_at < now)
