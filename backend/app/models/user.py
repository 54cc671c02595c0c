from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import Date, DateTime, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class UserStatus(enum.IntEnum):
    ACTIVE = 1
    INACTIVE = 2


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # bcrypt hash
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    avatar: Mapped[str | None] = mapped_column(String(255), nullable=True)  # relative to storage_dir
    status: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=UserStatus.ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Refresh tokens and OTPs reference users.id without ORM cascades; deleting a
    # user leaves them behind unless the caller destroys them explicitly.
