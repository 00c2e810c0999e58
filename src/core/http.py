"""
Shared httpx helpers for the calendar, board and messaging clients.
"""

import asyncio

import httpx

from core.config import BACKOFF_FACTOR, MAX_RETRIES, REQUEST_TIMEOUT, RETRY_STATUS_CODES
from core.logging import get_logger

logger = get_logger(__name__)


def create_client(**kwargs) -> httpx.AsyncClient:
    """Create an async HTTP client with the project-wide timeout."""
    kwargs.setdefault("timeout", httpx.Timeout(REQUEST_TIMEOUT))
    return httpx.AsyncClient(**kwargs)


async def request_with_retry(
    client: httpx.AsyncClient, method: str, url: str, **kwargs
) -> httpx.Response:
    """Execute an HTTP request, retrying transport errors and retryable statuses."""
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            response = await client.request(method, url, **kwargs)
            if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                logger.debug(
                    "Retrying request",
                    method=method,
                    attempt=attempt,
                    status_code=response.status_code,
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
                continue
            return response
        except httpx.RequestError as e:
            if attempt >= MAX_RETRIES:
                raise
            backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
            logger.debug(
                "Request error, retrying",
                method=method,
                attempt=attempt,
                error=str(e),
                backoff_seconds=backoff,
            )
            await asyncio.sleep(backoff)
    raise RuntimeError("Retry loop exhausted")
