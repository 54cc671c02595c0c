"""Shared pagination params for list endpoints."""

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """Query params for paginated list endpoints."""

    limit: int = Field(default=10, ge=1, le=100, description="Max items per page")
    offset: int = Field(default=0, ge=0, description="Number of items to skip")
