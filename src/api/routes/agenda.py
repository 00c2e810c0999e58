"""Agenda generation endpoint."""

import time
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.dependencies import get_config, verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import AgendaRequest, AgendaResponse, ErrorCodes
from core.config import AppConfig
from core.logging import get_logger
from services.pipeline import run_agenda

logger = get_logger(__name__)

router = APIRouter(prefix="/v1")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def parse_agenda_date(date_str: str | None) -> date | None:
    """Parse agenda date string to date object."""
    if not date_str:
        return None
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid date format",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": ["Expected format: YYYY-MM-DD"],
            },
        )


@router.post("/agenda/generate", response_model=AgendaResponse)
async def generate_agenda_endpoint(
    request: Request,
    body: AgendaRequest | None = None,
    config: AppConfig = Depends(get_config),
    _api_key: str = Depends(verify_api_key),
):
    """
    Build today's agenda and deliver it.

    Collaborator failures do not fail the request: they are returned as
    ``errors`` with ``success`` set to false.
    """
    start_time = time.time()
    body = body or AgendaRequest()

    request_log = RequestLog(
        endpoint="/v1/agenda/generate",
        method="POST",
        client_ip=get_client_ip(request),
        agenda_date=body.date,
        dry_run=body.dry_run,
    )

    try:
        agenda_date = parse_agenda_date(body.date)
        result = await run_agenda(config, today=agenda_date, deliver=not body.dry_run)

        request_log.status_code = 200
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        if result.analysis:
            request_log.free_hours = result.analysis.free_hours
            request_log.day_category = result.analysis.day_category.name
        for error in result.errors:
            request_log.details.append(("warning", error))

        return AgendaResponse(
            message=result.message,
            success=result.success,
            delivered=result.delivered,
            errors=result.errors,
            free_hours=request_log.free_hours,
            day_category=request_log.day_category,
        )

    except HTTPException as e:
        request_log.status_code = e.status_code
        if isinstance(e.detail, dict):
            request_log.error_code = e.detail.get("code")
            request_log.error_message = e.detail.get("error")
            for detail in e.detail.get("details", []):
                request_log.details.append(("validation_error", detail))
        else:
            request_log.error_message = str(e.detail)
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        raise

    except Exception as e:
        logger.exception("Agenda run failed")
        request_log.status_code = 500
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)

        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal server error",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    finally:
        # Always log the request
        try:
            log_request(request_log)
        except Exception as e:
            logger.warning("Request logging failed", error=str(e))
