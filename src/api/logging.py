"""SQLite request logging for API."""

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from core.config import DB_PATH


@dataclass
class RequestLog:
    """Captured request/response data for logging."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    agenda_date: str | None = None
    dry_run: bool = False
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    free_hours: float | None = None
    day_category: str | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)


def log_request(log: RequestLog, db_path: Path = DB_PATH) -> None:
    """Write request log to SQLite database."""
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()

        cursor.execute(
            """
            INSERT INTO api_requests (
                request_id, timestamp, endpoint, method, client_ip,
                agenda_date, dry_run, status_code, error_code, error_message,
                processing_time_ms, free_hours, day_category
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                log.request_id,
                log.timestamp,
                log.endpoint,
                log.method,
                log.client_ip,
                log.agenda_date,
                int(log.dry_run),
                log.status_code,
                log.error_code,
                log.error_message,
                log.processing_time_ms,
                log.free_hours,
                log.day_category,
            ),
        )

        # Collaborator warnings and validation errors, one row each
        cursor.executemany(
            "INSERT INTO api_request_details (request_id, detail_type, message) VALUES (?, ?, ?)",
            [(log.request_id, detail_type, message) for detail_type, message in log.details],
        )

        conn.commit()
    finally:
        conn.close()
