"""Thin record store over AsyncSession: create / find / update / delete / destroy-by-filter.

Services go through a store instead of issuing statements themselves, so every
database failure reaches them as PersistenceError.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import PersistenceError
from app.db.base import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class RecordStore(Generic[ModelT]):
    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self.session = session
        self.model = model

    async def create(self, **values: Any) -> ModelT:
        record = self.model(**values)
        try:
            self.session.add(record)
            await self.session.flush()
            await self.session.refresh(record)
        except SQLAlchemyError as e:
            raise PersistenceError(f"create {self.model.__name__} failed") from e
        return record

    async def find_one(self, *where: Any) -> ModelT | None:
        try:
            r = await self.session.execute(select(self.model).where(*where).limit(1))
        except SQLAlchemyError as e:
            raise PersistenceError(f"find {self.model.__name__} failed") from e
        return r.scalars().first()

    async def find_all(
        self,
        *where: Any,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[ModelT]:
        stmt = select(self.model).where(*where).order_by(self.model.id).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            r = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"list {self.model.__name__} failed") from e
        return r.scalars().all()

    async def count(self, *where: Any) -> int:
        try:
            r = await self.session.execute(select(func.count()).select_from(self.model).where(*where))
        except SQLAlchemyError as e:
            raise PersistenceError(f"count {self.model.__name__} failed") from e
        return int(r.scalar_one())

    async def update(self, values: dict[str, Any], *where: Any) -> int:
        """Update matching rows; returns the number of rows changed."""
        if not values:
            return 0
        try:
            r = await self.session.execute(
                update(self.model).where(*where).values(**values).execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"update {self.model.__name__} failed") from e
        return r.rowcount or 0

    async def delete(self, record: ModelT) -> None:
        try:
            await self.session.delete(record)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"delete {self.model.__name__} failed") from e

    async def destroy(self, *where: Any) -> int:
        """Delete every row matching the filter; a no-op when nothing matches."""
        try:
            r = await self.session.execute(
                delete(self.model).where(*where).execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"destroy {self.model.__name__} failed") from e
        deleted = r.rowcount or 0
        if deleted:
            logger.debug("Destroyed %s %s row(s)", deleted, self.model.__tablename__)
        return deleted

    async def commit(self) -> None:
        """Make the pending writes durable before the caller reports success."""
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"commit {self.model.__name__} failed") from e
