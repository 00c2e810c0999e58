"""Pydantic request and response models for API endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    delivery_channel: str | None = None
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class AgendaRequest(BaseModel):
    """Optional overrides for an agenda run."""

    date: str | None = None  # YYYY-MM-DD, defaults to today
    dry_run: bool = False  # Compose without delivering


class AgendaResponse(BaseModel):
    """Result of an agenda run."""

    message: str
    success: bool
    delivered: bool
    errors: list[str] = []
    free_hours: float | None = None
    day_category: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONFIG_ERROR = "CONFIG_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
