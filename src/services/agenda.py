"""
Day analysis: today's meetings, free hours, focus slots and day category.

Everything here is pure. "now" is passed in by the caller and never re-read,
so the same inputs always produce the same DayAnalysis.

All wall-clock arithmetic happens in the work timezone. Naive datetimes are
taken as already being wall-clock time there.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta, tzinfo

from core.config import (
    BREAK_HOURS,
    FOCUSED_MIN_FREE_HOURS,
    INTERNAL_STATUS_PATTERN,
    MIN_FOCUS_SLOT_HOURS,
    PRODUCT_REVIEW_PATTERN,
    SALES_STATUS_PATTERN,
    SOME_FOCUS_MIN_FREE_HOURS,
    WORK_END,
    WORK_START,
    WORK_TIMEZONE,
)
from core.logging import get_logger
from models.events import (
    BossPreparationData,
    CalendarEvent,
    DayAnalysis,
    DayCategory,
    MeetingFlag,
    TodayMeeting,
    WeekContent,
    WorkWindow,
)

logger = get_logger(__name__)

IMPORTANT_MEETING_PATTERNS = {
    MeetingFlag.INTERNAL_STATUS: INTERNAL_STATUS_PATTERN,
    MeetingFlag.PRODUCT_REVIEW: PRODUCT_REVIEW_PATTERN,
    MeetingFlag.SALES_STATUS: SALES_STATUS_PATTERN,
}

BOSS_STATUS_TASK = "Prepare for the status with the boss"
PRODUCT_STATUS_TASK = "Prepare for the product status"

ONE_DAY = timedelta(days=1)


# =============================================================================
# TIME HELPERS
# =============================================================================


def to_local(dt: datetime, tz: tzinfo = WORK_TIMEZONE) -> datetime:
    """Project a datetime into the work timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _at(day: date, clock: time, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(clock.hour, clock.minute), tzinfo=tz)


def _is_midnight(dt: datetime) -> bool:
    return dt.hour == 0 and dt.minute == 0


def _round_one_decimal(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


# =============================================================================
# EVENT NORMALIZER
# =============================================================================


def is_all_day(start: datetime, end: datetime) -> bool:
    """All-day markers last a full day or run midnight to midnight."""
    return end - start >= ONE_DAY or (_is_midnight(start) and _is_midnight(end))


def normalize_events(
    events: Iterable[CalendarEvent],
    today: date,
    tz: tzinfo = WORK_TIMEZONE,
    only_today: bool = False,
) -> list[TodayMeeting]:
    """
    Turn raw calendar events into today's timed meetings, sorted by start.

    Recurring events may come back with their original DTSTART instead of
    today's occurrence, so only the time of day is kept and moved onto
    ``today``. An end that lands on or before the start wraps to the next day.

    By default the caller is trusted to pass only today's events. With
    ``only_today`` events whose original interval misses ``today`` are dropped
    first; do not use it with sources that report recurring events by their
    original date.
    """
    day_start = datetime.combine(today, time.min, tzinfo=tz)
    day_end = day_start + ONE_DAY
    meetings: list[TodayMeeting] = []

    for event in events:
        start = to_local(event.start, tz)
        end = to_local(event.end, tz)

        if end <= start:
            logger.warning(
                "Skipping malformed event",
                summary=event.summary,
                start=start.isoformat(),
                end=end.isoformat(),
            )
            continue

        if is_all_day(start, end):
            logger.debug("Ignoring all-day event", summary=event.summary)
            continue

        if only_today and not (start < day_end and end > day_start):
            logger.debug("Ignoring event outside today", summary=event.summary)
            continue

        anchored_start = _at(today, start.time(), tz)
        anchored_end = _at(today, end.time(), tz)
        if anchored_end <= anchored_start:
            anchored_end += ONE_DAY

        duration_minutes = round((anchored_end - anchored_start).total_seconds() / 60)
        meetings.append(
            TodayMeeting(
                summary=event.summary,
                start=anchored_start,
                end=anchored_end,
                duration_minutes=duration_minutes,
            )
        )
        logger.debug(
            "Today meeting",
            summary=event.summary,
            start=anchored_start.isoformat(),
            duration_minutes=duration_minutes,
        )

    meetings.sort(key=lambda m: m.start)
    logger.info("Normalized today's meetings", total_events=len(meetings))
    return meetings


# =============================================================================
# WORK WINDOW
# =============================================================================


def get_work_window(
    today: date,
    now: datetime,
    tz: tzinfo = WORK_TIMEZONE,
    work_start: time = WORK_START,
    work_end: time = WORK_END,
) -> WorkWindow:
    """
    Work boundaries for ``today``.

    The effective start moves up to ``now`` only when ``now`` falls on
    ``today`` and is already past the start of work.
    """
    start = _at(today, work_start, tz)
    end = _at(today, work_end, tz)
    local_now = to_local(now, tz)

    effective_start = start
    if local_now.date() == today and local_now > start:
        effective_start = local_now

    return WorkWindow(work_start=start, work_end=end, effective_start=effective_start)


def clip_to_window(
    meetings: Iterable[TodayMeeting], window: WorkWindow
) -> list[tuple[datetime, datetime]]:
    """Clip meetings to the remaining window, dropping the ones left empty."""
    clipped = []
    for meeting in meetings:
        start = max(meeting.start, window.effective_start)
        end = min(meeting.end, window.work_end)
        if start < end:
            clipped.append((start, end))
    return clipped


def merge_intervals(
    intervals: Iterable[tuple[datetime, datetime]],
) -> list[tuple[datetime, datetime]]:
    """Coalesce intervals; touching intervals merge."""
    merged: list[tuple[datetime, datetime]] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


# =============================================================================
# FREE TIME
# =============================================================================


def calculate_free_hours(
    meetings: Sequence[TodayMeeting],
    today: date,
    now: datetime,
    tz: tzinfo = WORK_TIMEZONE,
    break_hours: float = BREAK_HOURS,
    work_start: time = WORK_START,
    work_end: time = WORK_END,
) -> float:
    """Free work hours left today, one decimal, never negative."""
    window = get_work_window(today, now, tz, work_start, work_end)
    if window.is_empty:
        return 0.0

    merged = merge_intervals(clip_to_window(meetings, window))
    occupied_minutes = sum((end - start).total_seconds() / 60 for start, end in merged)
    occupied_hours = occupied_minutes / 60
    free_hours = window.available_hours - break_hours - occupied_hours

    logger.debug(
        "Free hours calculated",
        effective_start=window.effective_start.isoformat(),
        work_end=window.work_end.isoformat(),
        available=round(window.available_hours, 2),
        meetings=round(occupied_hours, 2),
        break_hours=break_hours,
        free=round(free_hours, 2),
    )
    return max(0.0, _round_one_decimal(free_hours))


# =============================================================================
# FOCUS SLOT
# =============================================================================


def has_long_focus_slot(
    meetings: Sequence[TodayMeeting],
    today: date,
    now: datetime,
    min_slot_hours: float = MIN_FOCUS_SLOT_HOURS,
    tz: tzinfo = WORK_TIMEZONE,
    work_start: time = WORK_START,
    work_end: time = WORK_END,
) -> bool:
    """Whether an uninterrupted gap of at least ``min_slot_hours`` is left today."""
    window = get_work_window(today, now, tz, work_start, work_end)
    if window.is_empty:
        return False

    overlapping = sorted(
        (m for m in meetings if m.start < window.work_end and m.end > window.effective_start),
        key=lambda m: m.start,
    )
    # A meeting-free window counts as a slot even when shorter than the minimum
    if not overlapping:
        return True

    min_gap = timedelta(hours=min_slot_hours)
    cursor = window.effective_start

    for meeting in overlapping:
        meeting_start = max(meeting.start, window.effective_start)
        if meeting_start > cursor and meeting_start - cursor >= min_gap:
            return True

        meeting_end = min(meeting.end, window.work_end)
        if meeting_end > cursor:
            cursor = meeting_end

    return window.work_end - cursor >= min_gap


# =============================================================================
# CLASSIFICATION
# =============================================================================


def determine_day_category(free_hours: float, long_focus_slot: bool) -> DayCategory:
    if free_hours >= FOCUSED_MIN_FREE_HOURS:
        return DayCategory.FOCUSED
    if free_hours >= SOME_FOCUS_MIN_FREE_HOURS and long_focus_slot:
        return DayCategory.SOME_FOCUS_TIME
    return DayCategory.NO_FOCUS


def find_important_meetings(events: Iterable[CalendarEvent]) -> set[MeetingFlag]:
    """
    Flag tracked meetings by case-insensitive title match.

    No date filtering happens here: callers pass events from today onwards,
    otherwise past meetings of the week still raise their flag.
    """
    found: set[MeetingFlag] = set()
    for event in events:
        summary = event.summary.casefold()
        for flag, pattern in IMPORTANT_MEETING_PATTERNS.items():
            if pattern.casefold() in summary:
                found.add(flag)

    logger.info(
        "Important meetings found",
        internal=MeetingFlag.INTERNAL_STATUS in found,
        product_review=MeetingFlag.PRODUCT_REVIEW in found,
        sales=MeetingFlag.SALES_STATUS in found,
    )
    return found


def generate_recommended_tasks(
    day_category: DayCategory, flags: set[MeetingFlag]
) -> list[str]:
    """Preparation tasks worth doing today; none on a day without focus time."""
    if day_category is DayCategory.NO_FOCUS:
        return []

    tasks = []
    if MeetingFlag.INTERNAL_STATUS in flags:
        tasks.append(BOSS_STATUS_TASK)
    if MeetingFlag.PRODUCT_REVIEW in flags:
        tasks.append(PRODUCT_STATUS_TASK)
    return tasks


def get_week_content(today: date) -> WeekContent:
    """Odd ISO weeks are for pitches, even ones for numbers."""
    if today.isocalendar()[1] % 2 == 1:
        return WeekContent.PITCH_PREPARATION
    return WeekContent.NUMBERS_AND_GROWTH


# =============================================================================
# ENTRY POINT
# =============================================================================


def analyze_day(
    events: Sequence[CalendarEvent],
    today: date,
    now: datetime,
    boss_preparation: BossPreparationData | None = None,
    upcoming_events: Sequence[CalendarEvent] | None = None,
    only_today: bool = False,
    tz: tzinfo = WORK_TIMEZONE,
) -> DayAnalysis:
    """
    Analyze ``today`` from its events.

    Args:
        events: Today's events from the calendar source
        today: Analysis date in the work timezone
        now: Current moment, captured once by the caller
        boss_preparation: Notes for the boss status, passed through as-is
        upcoming_events: Events from today through the end of the work week,
            scanned for important meetings; falls back to ``events``
        only_today: Drop events that do not touch ``today`` before analysis
        tz: Work timezone
    """
    today_meetings = normalize_events(events, today, tz=tz, only_today=only_today)
    free_hours = calculate_free_hours(today_meetings, today, now, tz=tz)
    long_slot = has_long_focus_slot(today_meetings, today, now, tz=tz)
    day_category = determine_day_category(free_hours, long_slot)

    flags = find_important_meetings(events if upcoming_events is None else upcoming_events)

    logger.info(
        "Day analyzed",
        today=today.isoformat(),
        free_hours=free_hours,
        day_category=day_category.name,
        long_focus_slot=long_slot,
    )

    return DayAnalysis(
        free_hours=free_hours,
        day_category=day_category,
        today_meetings=today_meetings,
        has_long_focus_slot=long_slot,
        recommended_tasks=generate_recommended_tasks(day_category, flags),
        has_internal_status_upcoming=MeetingFlag.INTERNAL_STATUS in flags,
        has_product_review_upcoming=MeetingFlag.PRODUCT_REVIEW in flags,
        has_sales_status_upcoming=MeetingFlag.SALES_STATUS in flags,
        week_content=get_week_content(today),
        boss_preparation=boss_preparation,
    )
