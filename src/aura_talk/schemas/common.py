"""Shared Pydantic schemas."""

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class StatusResponse(BaseModel):
    """Simple acknowledgement payload."""

    status: str


class SnapshotFrame(BaseModel, Generic[T]):
    """WebSocket frame carrying a full window snapshot."""

    type: Literal["snapshot"] = "snapshot"
    items: list[T]
