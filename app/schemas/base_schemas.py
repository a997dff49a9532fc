"""Base schemas for common response patterns."""
from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """Base response model with generic data field."""

    success: bool = True
    message: str = "Success"
    data: T | None = None
