"""User payloads: create/update input (multipart form fields) and public output."""

from __future__ import annotations

import re
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from app.config import settings
from app.core.validation import (
    check_confirmation,
    check_dob,
    check_email,
    check_name,
    check_password,
    check_status,
)
from app.services.storage import UploadedFile

AVATAR_NAME_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif)$", re.IGNORECASE)
AVATAR_CONTENT_TYPES = ("image/jpeg", "image/png", "image/gif")


def check_avatar(upload: UploadedFile) -> UploadedFile:
    if not AVATAR_NAME_PATTERN.search(upload.original_name):
        raise ValueError("File must be an image (jpg, jpeg, png, gif)")
    if upload.content_type not in AVATAR_CONTENT_TYPES:
        raise ValueError("Invalid file type")
    if upload.size > settings.max_file_size_bytes:
        raise ValueError(f"File size must be less than {settings.max_file_size_mb}MB")
    return upload


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    name: str
    email: str
    status: int = 1
    dob: date | None = None
    password: str
    confirm_password: str = Field(alias="confirmPassword")
    avatar: UploadedFile | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return check_name(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return check_email(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v) -> int:
        return check_status(v)

    @field_validator("dob", mode="before")
    @classmethod
    def _dob(cls, v) -> date:
        return check_dob(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v, "password")

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, v: str, info: ValidationInfo) -> str:
        return check_confirmation(v, info.data.get("password"))

    @field_validator("avatar")
    @classmethod
    def _avatar(cls, v: UploadedFile | None) -> UploadedFile | None:
        return check_avatar(v) if v is not None else v


class UserUpdate(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str | None = None
    email: str | None = None
    status: int | None = None
    dob: date | None = None
    avatar: UploadedFile | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        return check_name(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return check_email(v) if v is not None else v

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return check_status(v) if v is not None else v

    @field_validator("dob", mode="before")
    @classmethod
    def _dob(cls, v):
        return check_dob(v) if v is not None else v

    @field_validator("avatar")
    @classmethod
    def _avatar(cls, v: UploadedFile | None) -> UploadedFile | None:
        return check_avatar(v) if v is not None else v

    @model_validator(mode="after")
    def _at_least_one(self) -> UserUpdate:
        if all(getattr(self, f) is None for f in ("name", "email", "status", "dob")):
            raise ValueError('"value" must contain at least one of [name, email, status, dob]')
        return self


class UserOut(BaseModel):
    """Public view of a user; id is the encrypted identifier."""

    id: str
    name: str
    email: str
    dob: date | None = None
    avatar: str | None = None
    status: int
