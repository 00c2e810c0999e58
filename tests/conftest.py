"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add src and tests to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from core.config import WORK_TIMEZONE, load_config  # noqa: E402
from models.events import CalendarEvent  # noqa: E402

# Monday, even ISO week (46)
TODAY = date(2025, 11, 10)


def at(hour: int, minute: int = 0, day: date = TODAY) -> datetime:
    """Wall-clock time in the work timezone."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=WORK_TIMEZONE)


def make_event(summary: str, start: datetime, end: datetime) -> CalendarEvent:
    return CalendarEvent(summary=summary, start=start, end=end, uid=f"{summary}-{start:%H%M}")


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def before_work():
    """A 'now' before the work day starts."""
    return at(8)


@pytest.fixture
def env():
    """Complete environment for load_config."""
    return {
        "CALDAV_SERVER_URL": "https://caldav.example.com/calendars/user/",
        "CALDAV_USERNAME": "user",
        "CALDAV_PASSWORD": "secret",
        "MIRO_ACCESS_TOKEN": "miro-token",
        "MIRO_BOARD_ID": "board-1",
        "MIRO_TARGET_WIDGET_ID": "root-1",
        "TELEGRAM_BOT_TOKEN": "123:abc",
        "TELEGRAM_CHAT_ID": "42",
        "AGENDA_API_KEY": "test-api-key",
    }


@pytest.fixture
def app_config(env):
    return load_config(env)
