"""
Configuration constants and environment setup.
"""

import os
from datetime import time
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "daily-agenda.db"

# =============================================================================
# WORK WINDOW
# =============================================================================

WORK_TIMEZONE = ZoneInfo("Europe/Moscow")
WORK_START = time(10, 0)
WORK_END = time(18, 0)
BREAK_HOURS = 0.5  # Unpaid lunch break, subtracted from every day

MIN_FOCUS_SLOT_HOURS = 2

# =============================================================================
# DAY CATEGORIES
# =============================================================================

FOCUSED_MIN_FREE_HOURS = 6
SOME_FOCUS_MIN_FREE_HOURS = 3

# =============================================================================
# IMPORTANT MEETINGS
# =============================================================================

# Titles as they appear in the calendar; matched case-insensitively as substrings
INTERNAL_STATUS_PATTERN = "внутренний продуктовый статус"
PRODUCT_REVIEW_PATTERN = "product review weekly"
SALES_STATUS_PATTERN = "заемщики: результаты, действия, run задачи"

# =============================================================================
# BOARD
# =============================================================================

MIRO_API_BASE_URL = "https://api.miro.com/v2-experimental"
MIRO_PAGE_LIMIT = 50
TARGET_WIDGET_LABEL = "ключевые векторы"  # Fallback lookup when the widget ID is stale
EXCLUDED_FOCUS_AREA = "Профессиональное развитие"

BOSS_PREPARATION_LABEL = "Boss status"
CONCEPTUAL_THOUGHTS_LABEL = "Conceptual thoughts"
MEETING_SELECTION_LABEL = "Meeting selection"

# =============================================================================
# MESSAGING
# =============================================================================

TELEGRAM_API_BASE_URL = "https://api.telegram.org"
DELIVERY_CHANNELS = {"telegram", "email"}

# =============================================================================
# HTTP CLIENTS
# =============================================================================

REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 1
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
API_VERSION = "1.0.0"


# =============================================================================
# CREDENTIALS (from environment)
# =============================================================================


class ConfigError(Exception):
    """Raised when required settings are missing or invalid."""


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CalDAVConfig(_Frozen):
    server_url: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    calendar_path: str | None = None

    @field_validator("server_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value


class MiroConfig(_Frozen):
    access_token: str = Field(min_length=1)
    board_id: str = Field(min_length=1)
    target_widget_id: str = Field(min_length=1)


class TelegramConfig(_Frozen):
    bot_token: str = Field(min_length=1)
    chat_id: str = Field(min_length=1)


class GraphConfig(_Frozen):
    tenant_id: str = ""
    app_id: str = ""
    client_secret: str = ""
    from_email: str = ""
    to_email: str = ""

    @property
    def is_configured(self) -> bool:
        return all(
            [self.tenant_id, self.app_id, self.client_secret, self.from_email, self.to_email]
        )


class AppConfig(_Frozen):
    """Immutable application settings, built once per process or reload."""

    caldav: CalDAVConfig
    miro: MiroConfig
    telegram: TelegramConfig
    graph: GraphConfig = GraphConfig()
    delivery_channel: str = "telegram"
    api_key: str = ""

    @field_validator("delivery_channel")
    @classmethod
    def _check_channel(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in DELIVERY_CHANNELS:
            raise ValueError(f"must be one of {sorted(DELIVERY_CHANNELS)}")
        return value


def load_config(environ: dict[str, str] | None = None) -> AppConfig:
    """
    Build an AppConfig from environment variables.

    Raises:
        ConfigError: listing every missing or invalid setting
    """
    env = os.environ if environ is None else environ
    raw = {
        "caldav": {
            "server_url": env.get("CALDAV_SERVER_URL", ""),
            "username": env.get("CALDAV_USERNAME", ""),
            "password": env.get("CALDAV_PASSWORD", ""),
            "calendar_path": env.get("CALDAV_CALENDAR_PATH") or None,
        },
        "miro": {
            "access_token": env.get("MIRO_ACCESS_TOKEN", ""),
            "board_id": env.get("MIRO_BOARD_ID", ""),
            "target_widget_id": env.get("MIRO_TARGET_WIDGET_ID", ""),
        },
        "telegram": {
            "bot_token": env.get("TELEGRAM_BOT_TOKEN", ""),
            "chat_id": env.get("TELEGRAM_CHAT_ID", ""),
        },
        "graph": {
            "tenant_id": env.get("MICROSOFT_GRAPH_TENANT_ID", ""),
            "app_id": env.get("MICROSOFT_GRAPH_APP_ID", ""),
            "client_secret": env.get("MICROSOFT_GRAPH_CLIENT_SECRET", ""),
            "from_email": env.get("AGENDA_FROM_EMAIL", ""),
            "to_email": env.get("AGENDA_TO_EMAIL", ""),
        },
        "delivery_channel": env.get("DELIVERY_CHANNEL", "telegram"),
        "api_key": env.get("AGENDA_API_KEY", ""),
    }

    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors)) from e

    if config.delivery_channel == "email" and not config.graph.is_configured:
        raise ConfigError(
            "Invalid configuration:\ngraph: email delivery requires Microsoft Graph "
            "credentials and AGENDA_FROM_EMAIL/AGENDA_TO_EMAIL"
        )

    return config
