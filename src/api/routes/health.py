"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models.responses import HealthResponse
from core.config import API_VERSION

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if the configuration is not loaded.
    """
    config = getattr(request.app.state, "config", None)
    timestamp = datetime.now(timezone.utc).isoformat()

    if config is not None:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            delivery_channel=config.delivery_channel,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                timestamp=timestamp,
                error="Configuration not loaded",
            ).model_dump(),
        )
