"""Error taxonomy shared by services and routes.

Every AppError carries the HTTP status and the message shown to the client; the
exception handlers in app.main turn it into the {code, message} envelope.
PersistenceError and MailDeliveryError are internal causes: they are logged and
surface as a generic 500, never with their original text.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(AppError):
    status_code = 400
    default_message = "Bad request"


class ValidationError(BadRequest):
    default_message = "Validation error"


class InvalidToken(BadRequest):
    default_message = "Invalid token"


class TokenExpired(BadRequest):
    default_message = "Token expired"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Invalid access token"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class InternalError(AppError):
    status_code = 500


class PersistenceError(Exception):
    """A record-store read or write failed."""


class MailDeliveryError(Exception):
    """The mail transport rejected or could not deliver a message."""


def first_error_message(errors: list[dict[str, Any]]) -> str:
    """Return a client message for the first pydantic error in the list.

    Custom validators raise ValueError with a complete message; built-in errors
    are rendered as '"<field>" is required' / '"<field>" must be a string' etc.
    """
    if not errors:
        return "Validation error"
    err = errors[0]
    ctx = err.get("ctx") or {}
    if err.get("type") == "value_error" and "error" in ctx:
        return str(ctx["error"])
    loc = [str(part) for part in err.get("loc", ()) if part != "body"]
    label = loc[-1] if loc else "value"
    kind = err.get("type", "")
    if kind == "missing":
        return f'"{label}" is required'
    if kind.startswith("string_"):
        return f'"{label}" must be a string'
    if kind in ("int_type", "int_parsing"):
        return f'"{label}" must be a number'
    if kind in ("model_type", "model_attributes_type", "dict_type"):
        return f'"{label}" must be of type object'
    return f'"{label}" is invalid'
