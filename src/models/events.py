"""
Data models for calendar events and day analysis.

Frozen dataclasses: every value here is built once per run and only read after.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class DayCategory(str, Enum):
    """Ordinal day label, lowest to highest."""

    NO_FOCUS = "NO FOCUS, SIR"
    SOME_FOCUS_TIME = "SOME TIME FOR FOCUS"
    FOCUSED = "FOCUSED"

    @property
    def rank(self) -> int:
        return _CATEGORY_RANK[self]


_CATEGORY_RANK = {
    DayCategory.NO_FOCUS: 0,
    DayCategory.SOME_FOCUS_TIME: 1,
    DayCategory.FOCUSED: 2,
}


class WeekContent(str, Enum):
    """Theme of the weekly status with the boss, alternating by ISO week."""

    PITCH_PREPARATION = "pitch preparation"
    NUMBERS_AND_GROWTH = "numbers and growth"


class MeetingFlag(str, Enum):
    """Tracked recurring meetings that trigger preparation tasks."""

    INTERNAL_STATUS = "internal_status"
    PRODUCT_REVIEW = "product_review"
    SALES_STATUS = "sales_status"


@dataclass(frozen=True)
class CalendarEvent:
    """Raw event as returned by the calendar source."""

    summary: str
    start: datetime
    end: datetime
    uid: str = ""
    description: str | None = None


@dataclass(frozen=True)
class TodayMeeting:
    """Timed meeting re-anchored onto the analysis date."""

    summary: str
    start: datetime
    end: datetime
    duration_minutes: int


@dataclass(frozen=True)
class WorkWindow:
    """Work boundaries for one analysis date."""

    work_start: datetime
    work_end: datetime
    effective_start: datetime

    @property
    def is_empty(self) -> bool:
        return self.effective_start >= self.work_end

    @property
    def available_hours(self) -> float:
        if self.is_empty:
            return 0.0
        return (self.work_end - self.effective_start).total_seconds() / 3600


@dataclass(frozen=True)
class BossPreparationData:
    """Notes for the status with the boss, read from the board."""

    conceptual_thoughts: list[str] = field(default_factory=list)
    meeting_selection: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DayAnalysis:
    """Result of analyzing one day."""

    free_hours: float
    day_category: DayCategory
    today_meetings: list[TodayMeeting]
    has_long_focus_slot: bool
    recommended_tasks: list[str]
    has_internal_status_upcoming: bool
    has_product_review_upcoming: bool
    has_sales_status_upcoming: bool
    week_content: WeekContent
    boss_preparation: BossPreparationData | None = None

    @property
    def has_any_tasks(self) -> bool:
        return (
            self.has_internal_status_upcoming
            or self.has_product_review_upcoming
            or self.has_sales_status_upcoming
        )


@dataclass
class AgendaResult:
    """Outcome of one pipeline run."""

    message: str
    success: bool
    errors: list[str] = field(default_factory=list)
    analysis: DayAnalysis | None = None
    delivered: bool = False
