"""Response envelope shared by every endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from ongflow.application.dtos.results import ErrorInfo

T = TypeVar("T")


class ErrorBody(BaseModel):
    """Machine-readable failure."""

    kind: str = Field(..., description="Error kind, e.g. NOT_FOUND")
    message: str = Field(..., description="Human-readable message")
    detail: str | None = Field(
        default=None, description="Exception detail (development only)"
    )

    @classmethod
    def from_info(cls, info: ErrorInfo | None) -> ErrorBody | None:
        if info is None:
            return None
        return cls(kind=info.kind, message=info.message)


class SuccessResponse(BaseModel, Generic[T]):
    """Successful response wrapper."""

    success: bool = Field(default=True)
    data: T


class ErrorResponse(BaseModel):
    """Failed response wrapper."""

    success: bool = Field(default=False)
    error: ErrorBody
