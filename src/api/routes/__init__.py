"""API route modules."""

from .agenda import router as agenda_router
from .health import router as health_router

__all__ = ["health_router", "agenda_router"]
