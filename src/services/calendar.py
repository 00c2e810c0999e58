"""
Calendar discovery and event fetching over CalDAV.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from urllib.parse import urljoin
from xml.etree import ElementTree

import httpx
from icalendar import Calendar

from core.config import WORK_TIMEZONE, CalDAVConfig
from core.http import create_client, request_with_retry
from core.logging import get_logger
from models.events import CalendarEvent

logger = get_logger(__name__)

DAV_NS = "DAV:"
CALDAV_NS = "urn:ietf:params:xml:ns:caldav"

PROPFIND_BODY = """<?xml version="1.0" encoding="utf-8"?>
<d:propfind xmlns:d="DAV:" xmlns:c="urn:ietf:params:xml:ns:caldav">
  <d:prop>
    <d:resourcetype/>
    <d:displayname/>
  </d:prop>
</d:propfind>"""

CALENDAR_QUERY_BODY = """<?xml version="1.0" encoding="utf-8"?>
<c:calendar-query xmlns:d="DAV:" xmlns:c="urn:ietf:params:xml:ns:caldav">
  <d:prop>
    <d:getetag/>
    <c:calendar-data/>
  </d:prop>
  <c:filter>
    <c:comp-filter name="VCALENDAR">
      <c:comp-filter name="VEVENT">
        <c:time-range start="{start}" end="{end}"/>
      </c:comp-filter>
    </c:comp-filter>
  </c:filter>
</c:calendar-query>"""


class CalendarError(Exception):
    """Raised when the calendar server cannot be read."""


# =============================================================================
# DATE UTILITIES
# =============================================================================


def get_start_of_week(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def get_end_of_work_week(day: date) -> date:
    """Friday of the current work week; on weekends, the coming Friday."""
    weekday = day.weekday()
    if weekday == 6:
        days_until_friday = 5
    elif weekday == 5:
        days_until_friday = 6
    else:
        days_until_friday = 4 - weekday
    return day + timedelta(days=days_until_friday)


def format_ical_utc(dt: datetime) -> str:
    """Format as an iCalendar UTC timestamp (20240115T100000Z)."""
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


# =============================================================================
# PARSING
# =============================================================================


def _to_datetime(value: date | datetime, tz: tzinfo) -> datetime:
    if isinstance(value, datetime):
        # Floating times are wall-clock time in the work timezone
        return value if value.tzinfo else value.replace(tzinfo=tz)
    return datetime.combine(value, time.min, tzinfo=tz)


def parse_ical_events(ical_data: str, tz: tzinfo = WORK_TIMEZONE) -> list[CalendarEvent]:
    """Parse every VEVENT of an iCalendar payload into CalendarEvents."""
    calendar = Calendar.from_ical(ical_data)
    events = []

    for component in calendar.walk("VEVENT"):
        uid = str(component.get("UID", ""))
        summary = str(component.get("SUMMARY", ""))
        if not uid or not summary or "DTSTART" not in component:
            continue

        raw_start = component.decoded("DTSTART")
        start = _to_datetime(raw_start, tz)

        if "DTEND" in component:
            end = _to_datetime(component.decoded("DTEND"), tz)
        elif "DURATION" in component:
            end = start + component.decoded("DURATION")
        elif isinstance(raw_start, datetime):
            end = start
        else:
            end = start + timedelta(days=1)

        description = component.get("DESCRIPTION")
        events.append(
            CalendarEvent(
                summary=summary,
                start=start,
                end=end,
                uid=uid,
                description=str(description) if description else None,
            )
        )

    return events


def parse_calendar_collections(xml_text: str) -> list[tuple[str, str]]:
    """Extract (href, display name) of calendar collections from a PROPFIND reply."""
    root = ElementTree.fromstring(xml_text)
    calendars = []

    for response in root.iter(f"{{{DAV_NS}}}response"):
        href = response.findtext(f"{{{DAV_NS}}}href", default="")
        resource_type = response.find(f".//{{{DAV_NS}}}resourcetype")
        if resource_type is None or resource_type.find(f"{{{CALDAV_NS}}}calendar") is None:
            continue
        name = response.findtext(f".//{{{DAV_NS}}}displayname", default="")
        calendars.append((href, name))

    return calendars


def parse_calendar_data(xml_text: str) -> list[str]:
    """Extract the calendar-data payloads from a REPORT reply."""
    root = ElementTree.fromstring(xml_text)
    return [
        element.text
        for element in root.iter(f"{{{CALDAV_NS}}}calendar-data")
        if element.text and element.text.strip()
    ]


# =============================================================================
# CLIENT
# =============================================================================


class CalDAVService:
    """
    Reads events from a CalDAV calendar.

    ``server_url`` points at the calendar home collection; ``calendar_path``
    selects one of its calendars, otherwise the first one is used.
    """

    def __init__(
        self,
        config: CalDAVConfig,
        client: httpx.AsyncClient | None = None,
        tz: tzinfo = WORK_TIMEZONE,
    ):
        self.config = config
        self.tz = tz
        self._client = client or create_client(auth=(config.username, config.password))
        self._calendar_url: str | None = None

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CalDAVService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _send(self, method: str, url: str, body: str, depth: str) -> str:
        try:
            response = await request_with_retry(
                self._client,
                method,
                url,
                content=body.encode("utf-8"),
                headers={"Depth": depth, "Content-Type": "application/xml; charset=utf-8"},
            )
        except httpx.HTTPError as e:
            raise CalendarError(f"CalDAV request failed: {e}") from e

        if response.status_code != 207:
            raise CalendarError(f"CalDAV {method} error: {response.status_code} - {response.text}")
        return response.text

    async def discover_calendar(self) -> str:
        """Resolve the URL of the calendar to read."""
        if self._calendar_url:
            return self._calendar_url

        xml_text = await self._send("PROPFIND", self.config.server_url, PROPFIND_BODY, "1")
        try:
            calendars = parse_calendar_collections(xml_text)
        except ElementTree.ParseError as e:
            raise CalendarError(f"Invalid PROPFIND response: {e}") from e

        if not calendars:
            raise CalendarError("No calendars found")

        href = calendars[0][0]
        if self.config.calendar_path:
            for candidate, _name in calendars:
                if self.config.calendar_path in candidate:
                    href = candidate
                    break

        self._calendar_url = urljoin(self.config.server_url, href)
        logger.debug("Calendar selected", url=self._calendar_url)
        return self._calendar_url

    async def fetch_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Fetch events that overlap [start, end)."""
        calendar_url = await self.discover_calendar()
        body = CALENDAR_QUERY_BODY.format(start=format_ical_utc(start), end=format_ical_utc(end))
        xml_text = await self._send("REPORT", calendar_url, body, "1")

        try:
            payloads = parse_calendar_data(xml_text)
        except ElementTree.ParseError as e:
            raise CalendarError(f"Invalid REPORT response: {e}") from e

        events = []
        for payload in payloads:
            try:
                events.extend(parse_ical_events(payload, self.tz))
            except ValueError as e:
                logger.warning("Failed to parse iCal event", error=str(e))

        logger.info(
            "Fetched calendar events",
            count=len(events),
            start=start.isoformat(),
            end=end.isoformat(),
        )
        return events

    def _day_start(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    async def fetch_today_events(self, today: date) -> list[CalendarEvent]:
        start = self._day_start(today)
        return await self.fetch_events(start, start + timedelta(days=1))

    async def fetch_week_events(self, today: date) -> list[CalendarEvent]:
        """All events from Monday through Sunday of the current week."""
        start = self._day_start(get_start_of_week(today))
        return await self.fetch_events(start, start + timedelta(days=7))

    async def fetch_events_from_today_onwards(self, today: date) -> list[CalendarEvent]:
        """Events from the start of today through the end of Friday."""
        end = self._day_start(get_end_of_work_week(today) + timedelta(days=1))
        return await self.fetch_events(self._day_start(today), end)
