"""Response envelope shared by every endpoint.

Success: ``{"success": true, "data": ...}``
Failure: ``{"success": false, "message": ..., "code": ...}``
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")
ItemT = TypeVar("ItemT")


class Envelope(BaseModel, Generic[DataT]):
    success: bool = True
    data: DataT


class Page(BaseModel, Generic[ItemT]):
    """Paginated list."""

    items: list[ItemT]
    total: int


class MessageData(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    code: str
    # "reselect" on booking conflicts: pick other dates, do not just retry.
    retry: str | None = None
