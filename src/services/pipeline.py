"""
Daily agenda pipeline: fetch, analyze, compose, deliver.

Collaborator failures never stop the run. Each one becomes a warning string
and an empty value, and the message is still composed from what is left.
"""

import asyncio
from datetime import date, datetime

from core.config import WORK_TIMEZONE, AppConfig
from core.logging import get_logger
from models.board import MindmapNode
from models.events import AgendaResult, BossPreparationData, CalendarEvent
from services.agenda import analyze_day
from services.board import BoardError, MiroService, focus_areas_from, preparation_notes_from
from services.calendar import CalDAVService, CalendarError
from services.email import EmailDeliveryError, send_agenda_email
from services.messages import format_agenda_message
from services.telegram import TelegramError, TelegramService

logger = get_logger(__name__)


async def _fetch_calendar(
    config: AppConfig, today: date, errors: list[str]
) -> tuple[list[CalendarEvent], list[CalendarEvent]]:
    async with CalDAVService(config.caldav) as caldav:
        try:
            today_events = await caldav.fetch_today_events(today)
            upcoming_events = await caldav.fetch_events_from_today_onwards(today)
        except CalendarError as e:
            logger.error("Calendar fetch failed", error=str(e))
            errors.append(f"Calendar: {e}")
            return [], []
    return today_events, upcoming_events


async def _fetch_board(
    config: AppConfig, errors: list[str]
) -> tuple[list[str], BossPreparationData | None]:
    async with MiroService(config.miro) as miro:
        try:
            nodes: list[MindmapNode] = await miro.fetch_all_mindmap_nodes()
            focus_areas = focus_areas_from(nodes, config.miro.target_widget_id)
        except BoardError as e:
            logger.error("Board fetch failed", error=str(e))
            errors.append(f"Miro: {e}")
            return [], None
    return focus_areas, preparation_notes_from(nodes)


async def deliver_message(config: AppConfig, text: str, today: date) -> bool:
    """Send the message through the configured channel."""
    if config.delivery_channel == "email":
        return await send_agenda_email(config.graph, text, today)

    async with TelegramService(config.telegram) as telegram:
        return await telegram.send_message(text)


async def run_agenda(
    config: AppConfig,
    today: date | None = None,
    now: datetime | None = None,
    deliver: bool = True,
) -> AgendaResult:
    """
    Build today's agenda and optionally deliver it.

    Args:
        config: Application settings
        today: Analysis date; defaults to the date of ``now``
        now: Current moment in any timezone; captured once when omitted
        deliver: Send the message through the configured channel

    Returns:
        AgendaResult with the message, warnings and overall success
    """
    now = now or datetime.now(WORK_TIMEZONE)
    today = today or now.astimezone(WORK_TIMEZONE).date()
    errors: list[str] = []

    (today_events, upcoming_events), (focus_areas, boss_preparation) = await asyncio.gather(
        _fetch_calendar(config, today, errors),
        _fetch_board(config, errors),
    )

    analysis = analyze_day(
        today_events,
        today,
        now,
        boss_preparation=boss_preparation,
        upcoming_events=upcoming_events,
    )
    message = format_agenda_message(analysis, focus_areas)

    delivered = False
    if deliver:
        channel = "Email" if config.delivery_channel == "email" else "Telegram"
        try:
            delivered = await deliver_message(config, message, today)
        except (TelegramError, EmailDeliveryError) as e:
            logger.error("Delivery failed", channel=channel, error=str(e))
            errors.append(f"{channel}: {e}")

    success = not errors and (delivered or not deliver)
    logger.info(
        "Agenda run finished",
        today=today.isoformat(),
        success=success,
        delivered=delivered,
        warnings=len(errors),
    )
    return AgendaResult(
        message=message,
        success=success,
        errors=errors,
        analysis=analysis,
        delivered=delivered,
    )
