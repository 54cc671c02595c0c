"""Response envelope: {code, message, data?} for every endpoint, errors included."""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ApiResponse(BaseModel):
    code: int = 200
    message: str
    data: Any | None = None


def respond(message: str, data: Any = None, code: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=code, content=body)
