"""User records and the profile CRUD behind /user(s)."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import hash_password
from app.core.errors import NotFound, ValidationError
from app.db.store import RecordStore
from app.models.user import User
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services import storage
from app.services.crypto import InvalidIdentifier, decrypt_id, encrypt_id
from app.services.otp import OtpManager
from app.services.sessions import SessionStore

logger = logging.getLogger(__name__)


class UserStore(RecordStore[User]):
    """RecordStore for users that hashes the password on every write carrying one."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def create(self, **values: Any) -> User:
        if values.get("password"):
            values["password"] = hash_password(values["password"])
        return await super().create(**values)

    async def update(self, values: dict[str, Any], *where: Any) -> int:
        if values.get("password"):
            values = {**values, "password": hash_password(values["password"])}
        return await super().update(values, *where)

    async def find_by_email(self, email: str) -> User | None:
        return await self.find_one(User.email == email)

    async def find_by_id(self, user_id: int) -> User | None:
        return await self.find_one(User.id == user_id)


def to_public(user: User) -> UserOut:
    return UserOut(
        id=encrypt_id(user.id),
        name=user.name,
        email=user.email,
        dob=user.dob,
        avatar=user.avatar,
        status=int(user.status),
    )


def resolve_id(public_id: str, not_found_message: str) -> int:
    result = decrypt_id(public_id)
    if isinstance(result, InvalidIdentifier):
        logger.debug("Rejected identifier: %s", result.reason)
        raise NotFound(not_found_message)
    return result.value


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserStore(session)

    async def list_users(self, limit: int = 10, offset: int = 0) -> list[UserOut]:
        rows: Sequence[User] = await self.users.find_all(limit=limit, offset=offset)
        if not rows:
            raise NotFound("User not found")
        return [to_public(u) for u in rows]

    async def view(self, public_id: str) -> UserOut:
        user = await self.users.find_by_id(resolve_id(public_id, "User not found"))
        if user is None:
            raise NotFound("User not found")
        return to_public(user)

    async def create(self, data: UserCreate) -> UserOut:
        """Insert a user. The avatar temp file is promoted first and removed again if the insert or commit fails."""
        uploaded_path: str | None = None
        try:
            if await self.users.find_by_email(data.email) is not None:
                raise ValidationError("email already exists")
            if data.avatar is not None:
                uploaded_path = storage.promote(data.avatar)
            user = await self.users.create(
                name=data.name,
                email=data.email,
                password=data.password,
                dob=data.dob,
                avatar=uploaded_path,
                status=data.status,
            )
            await self.users.commit()
        except Exception:
            storage.remove(uploaded_path)
            storage.discard(data.avatar)
            raise
        logger.info("User created: id=%s", user.id)
        return to_public(user)

    async def update(self, public_id: str, data: UserUpdate) -> None:
        """Apply a partial update. The previous avatar is deleted only once the update is committed."""
        uploaded_path: str | None = None
        try:
            user_id = resolve_id(public_id, "User not updated")
            if data.email is not None:
                clash = await self.users.find_one(User.email == data.email, User.id != user_id)
                if clash is not None:
                    raise ValidationError("email already exists")
            user = await self.users.find_by_id(user_id)
            if user is None:
                raise NotFound("User not updated")
            old_avatar = user.avatar
            if data.avatar is not None:
                uploaded_path = storage.promote(data.avatar)
            values = data.model_dump(exclude_none=True, exclude={"avatar"})
            if uploaded_path:
                values["avatar"] = uploaded_path
            updated = await self.users.update(values, User.id == user_id)
            if updated != 1:
                raise NotFound("User not updated")
            await self.users.commit()
        except Exception:
            storage.remove(uploaded_path)
            storage.discard(data.avatar)
            raise
        if uploaded_path and old_avatar:
            storage.remove(old_avatar)
        logger.info("User updated: id=%s", user_id)

    async def delete(self, public_id: str) -> None:
        """Delete the user, its avatar file and the sessions/OTPs that reference it."""
        user_id = resolve_id(public_id, "User not deleted")
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFound("User not deleted")
        avatar = user.avatar
        await SessionStore(self.session).destroy_all_for_user(user_id)
        await OtpManager(self.session).destroy_all_for_user(user_id)
        await self.users.delete(user)
        await self.users.commit()
        storage.remove(avatar)
        logger.info("User deleted: id=%s", user_id)
