"""Field rules shared by request schemas, and parsing of raw payloads into them.

Each check raises ValueError carrying the full client message, so the first
error pydantic reports can be shown as-is (see first_error_message).
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from app.core.errors import ValidationError, first_error_message

PASSWORD_SYMBOLS = "!@#$%^&*"
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@#$%^&*])[A-Za-z\d!@#$%^&*]{8,}$"
)
EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")
OTP_PATTERN = re.compile(r"^\d{4,8}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DOB_MIN = date(1970, 1, 1)
DOB_MAX = date(2020, 12, 30)

ModelT = TypeVar("ModelT", bound=BaseModel)


def check_email(value: str, label: str = "email") -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError(f'"{label}" must be a valid email')
    return value


def check_password(value: str, label: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(f'"{label}" is invalid')
    return value


def check_confirmation(value: str, expected: str | None) -> str:
    # expected is None when the password itself already failed validation
    if expected is not None and value != expected:
        raise ValueError('"Confirm Password" must match Password')
    return value


def check_name(value: str, label: str = "name") -> str:
    if len(value) < 3:
        raise ValueError(f'"{label}" length must be at least 3 characters long')
    if len(value) > 30:
        raise ValueError(f'"{label}" length must be less than or equal to 30 characters long')
    return value


def check_status(value: Any, label: str = "status") -> int:
    try:
        status = int(value)
    except (TypeError, ValueError):
        raise ValueError(f'"{label}" must be one of [1, 2]') from None
    if status not in (1, 2):
        raise ValueError(f'"{label}" must be one of [1, 2]')
    return status


def check_dob(value: Any, label: str = "dob") -> date:
    if isinstance(value, date):
        parsed = value
    else:
        text = str(value)
        bad_format = f'"{label}" must be in YYYY-MM-DD format'
        if not DATE_PATTERN.match(text):
            raise ValueError(bad_format)
        try:
            parsed = datetime.strptime(text, "%Y-%m-%d").date()
        except ValueError:
            raise ValueError(bad_format) from None
    if parsed < DOB_MIN:
        raise ValueError(f'"{label}" must be greater than or equal to "{DOB_MIN.isoformat()}"')
    if parsed > DOB_MAX:
        raise ValueError(f'"{label}" must be less than or equal to "{DOB_MAX.isoformat()}"')
    return parsed


def check_otp(value: str, label: str = "otp") -> str:
    if not OTP_PATTERN.match(value):
        raise ValueError(f'"{label}" must be a 4 to 8 digit number')
    return value


def parse_payload(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate a raw payload (e.g. multipart form fields) into `model`.

    Empty strings count as absent. Raises ValidationError with the first violation.
    """
    cleaned = {k: v for k, v in data.items() if v is not None and v != ""}
    try:
        return model.model_validate(cleaned)
    except pydantic.ValidationError as e:
        raise ValidationError(first_error_message(e.errors())) from e
