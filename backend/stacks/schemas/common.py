"""Common Pydantic schemas used across the API."""

from typing import Dict, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response envelope."""

    status: str = "success"
    data: T


class ErrorDetail(BaseModel):
    """Error detail for error responses."""

    code: str
    message: str
    field: str | None = None


class ErrorResponse(BaseModel):
    """Standard API error response."""

    status: str = "error"
    error: ErrorDetail


def reject_null(v):
    """Partial updates may omit a field but may not null a required one."""
    if v is None:
        raise ValueError("may not be null")
    return v


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str
    services: Dict[str, str]
