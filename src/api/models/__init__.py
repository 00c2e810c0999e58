"""API Pydantic models."""

from .responses import AgendaRequest, AgendaResponse, ErrorCodes, ErrorResponse, HealthResponse

__all__ = ["AgendaRequest", "AgendaResponse", "HealthResponse", "ErrorResponse", "ErrorCodes"]
