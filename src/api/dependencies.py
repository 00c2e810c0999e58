"""FastAPI dependencies for authentication and shared resources."""

import secrets

from fastapi import Depends, Header, HTTPException, Request, status

from api.models.responses import ErrorCodes
from core.config import AppConfig


def get_config(request: Request) -> AppConfig:
    """Return the configuration loaded at startup."""
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Configuration not loaded",
                "code": ErrorCodes.CONFIG_ERROR,
                "details": [],
            },
        )
    return config


async def verify_api_key(
    x_api_key: str = Header(..., alias="X-API-Key"),
    config: AppConfig = Depends(get_config),
) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not config.api_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, config.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": ErrorCodes.UNAUTHORIZED,
                "details": [],
            },
        )

    return x_api_key
