"""
Tests for CalDAV parsing and the calendar client.
"""

from datetime import date

import httpx
import pytest

from conftest import TODAY, at
from services.calendar import (
    CalDAVService,
    CalendarError,
    format_ical_utc,
    get_end_of_work_week,
    get_start_of_week,
    parse_calendar_collections,
    parse_calendar_data,
    parse_ical_events,
)

TIMED_EVENT = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//EN
BEGIN:VEVENT
UID:standup-1
SUMMARY:Team standup
DESCRIPTION:Daily sync
DTSTART:20251110T070000Z
DTEND:20251110T073000Z
END:VEVENT
END:VCALENDAR
"""

ALL_DAY_EVENT = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//EN
BEGIN:VEVENT
UID:offsite-1
SUMMARY:Offsite
DTSTART;VALUE=DATE:20251110
DTEND;VALUE=DATE:20251111
END:VEVENT
END:VCALENDAR
"""

DURATION_AND_BROKEN_EVENTS = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//EN
BEGIN:VEVENT
UID:review-1
SUMMARY:Product review weekly
DTSTART:20251110T120000
DURATION:PT1H30M
END:VEVENT
BEGIN:VEVENT
UID:no-summary
DTSTART:20251110T130000Z
DTEND:20251110T140000Z
END:VEVENT
BEGIN:VEVENT
UID:reminder-1
SUMMARY:Reminder
DTSTART:20251110T150000Z
END:VEVENT
END:VCALENDAR
"""

PROPFIND_RESPONSE = """<?xml version="1.0" encoding="utf-8"?>
<d:multistatus xmlns:d="DAV:" xmlns:c="urn:ietf:params:xml:ns:caldav">
  <d:response>
    <d:href>/calendars/user/</d:href>
    <d:propstat><d:prop><d:resourcetype><d:collection/></d:resourcetype></d:prop></d:propstat>
  </d:response>
  <d:response>
    <d:href>/calendars/user/personal/</d:href>
    <d:propstat><d:prop>
      <d:resourcetype><d:collection/><c:calendar/></d:resourcetype>
      <d:displayname>Personal</d:displayname>
    </d:prop></d:propstat>
  </d:response>
  <d:response>
    <d:href>/calendars/user/work/</d:href>
    <d:propstat><d:prop>
      <d:resourcetype><d:collection/><c:calendar/></d:resourcetype>
      <d:displayname>Work</d:displayname>
    </d:prop></d:propstat>
  </d:response>
</d:multistatus>"""


def report_response(*payloads):
    responses = "".join(
        "<d:response><d:href>/calendars/user/work/{i}.ics</d:href>"
        "<d:propstat><d:prop><c:calendar-data>{data}</c:calendar-data></d:prop></d:propstat>"
        "</d:response>".format(i=i, data=data)
        for i, data in enumerate(payloads)
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<d:multistatus xmlns:d="DAV:" xmlns:c="urn:ietf:params:xml:ns:caldav">'
        f"{responses}</d:multistatus>"
    )


class FakeCalDAVServer:
    """Answers PROPFIND and REPORT and records what was asked."""

    def __init__(self, payloads, report_status=207):
        self.payloads = payloads
        self.report_status = report_status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "PROPFIND":
            return httpx.Response(207, text=PROPFIND_RESPONSE)
        if request.method == "REPORT":
            return httpx.Response(self.report_status, text=report_response(*self.payloads))
        return httpx.Response(405)


def make_service(app_config, server, **config_overrides):
    config = app_config.caldav.model_copy(update=config_overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return CalDAVService(config, client=client)


# =============================================================================
# DATE UTILITIES
# =============================================================================


@pytest.mark.parametrize(
    "day,expected",
    [
        (date(2025, 11, 10), date(2025, 11, 14)),
        (date(2025, 11, 13), date(2025, 11, 14)),
        (date(2025, 11, 14), date(2025, 11, 14)),
        (date(2025, 11, 15), date(2025, 11, 21)),
        (date(2025, 11, 16), date(2025, 11, 21)),
    ],
)
def test_end_of_work_week(day, expected):
    assert get_end_of_work_week(day) == expected


def test_start_of_week():
    assert get_start_of_week(date(2025, 11, 16)) == date(2025, 11, 10)
    assert get_start_of_week(TODAY) == TODAY


def test_format_ical_utc():
    assert format_ical_utc(at(10)) == "20251110T070000Z"


# =============================================================================
# PARSING
# =============================================================================


def test_parse_timed_event():
    [event] = parse_ical_events(TIMED_EVENT)

    assert event.uid == "standup-1"
    assert event.summary == "Team standup"
    assert event.description == "Daily sync"
    assert event.start == at(10)
    assert event.end == at(10, 30)


def test_parse_all_day_event_as_local_midnight():
    [event] = parse_ical_events(ALL_DAY_EVENT)

    assert event.start == at(0)
    assert event.end == at(0, day=date(2025, 11, 11))


def test_parse_duration_floating_time_and_incomplete_events():
    events = parse_ical_events(DURATION_AND_BROKEN_EVENTS)

    assert [e.uid for e in events] == ["review-1", "reminder-1"]
    review, reminder = events
    assert review.start == at(12)
    assert review.end == at(13, 30)
    assert reminder.end == reminder.start


def test_parse_calendar_collections_skips_plain_collections():
    assert parse_calendar_collections(PROPFIND_RESPONSE) == [
        ("/calendars/user/personal/", "Personal"),
        ("/calendars/user/work/", "Work"),
    ]


def test_parse_calendar_data():
    assert parse_calendar_data(report_response(TIMED_EVENT, ALL_DAY_EVENT)) == [
        TIMED_EVENT,
        ALL_DAY_EVENT,
    ]


# =============================================================================
# CLIENT
# =============================================================================


@pytest.mark.asyncio
async def test_fetch_today_events_uses_first_calendar(app_config):
    server = FakeCalDAVServer([TIMED_EVENT, ALL_DAY_EVENT])

    async with make_service(app_config, server) as service:
        events = await service.fetch_today_events(TODAY)

    assert [e.uid for e in events] == ["standup-1", "offsite-1"]
    propfind, report = server.requests
    assert propfind.headers["Depth"] == "1"
    assert str(report.url) == "https://caldav.example.com/calendars/user/personal/"
    body = report.content.decode()
    assert 'start="20251109T210000Z"' in body
    assert 'end="20251110T210000Z"' in body


@pytest.mark.asyncio
async def test_calendar_path_selects_collection(app_config):
    server = FakeCalDAVServer([TIMED_EVENT])

    async with make_service(app_config, server, calendar_path="work") as service:
        await service.fetch_today_events(TODAY)
        await service.fetch_today_events(TODAY)

    methods = [r.method for r in server.requests]
    assert methods == ["PROPFIND", "REPORT", "REPORT"]
    assert str(server.requests[1].url).endswith("/calendars/user/work/")


@pytest.mark.asyncio
async def test_fetch_events_from_today_onwards_ends_after_friday(app_config):
    server = FakeCalDAVServer([])

    async with make_service(app_config, server) as service:
        events = await service.fetch_events_from_today_onwards(TODAY)

    assert events == []
    body = server.requests[-1].content.decode()
    assert 'start="20251109T210000Z"' in body
    assert 'end="20251114T210000Z"' in body


@pytest.mark.asyncio
async def test_unparseable_payload_is_skipped(app_config):
    server = FakeCalDAVServer(["not a calendar", TIMED_EVENT])

    async with make_service(app_config, server) as service:
        events = await service.fetch_today_events(TODAY)

    assert [e.uid for e in events] == ["standup-1"]


@pytest.mark.asyncio
async def test_error_status_raises_calendar_error(app_config):
    server = FakeCalDAVServer([], report_status=403)

    async with make_service(app_config, server) as service:
        with pytest.raises(CalendarError, match="403"):
            await service.fetch_today_events(TODAY)


@pytest.mark.asyncio
async def test_transport_error_raises_calendar_error(app_config, monkeypatch):
    monkeypatch.setattr("core.http.BACKOFF_FACTOR", 0)

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(unreachable))
    async with CalDAVService(app_config.caldav, client=client) as service:
        with pytest.raises(CalendarError, match="connection refused"):
            await service.fetch_today_events(TODAY)


@pytest.mark.asyncio
async def test_fetch_week_events_covers_monday_to_monday(app_config):
    server = FakeCalDAVServer([TIMED_EVENT])

    async with make_service(app_config, server) as service:
        events = await service.fetch_week_events(date(2025, 11, 12))

    assert len(events) == 1
    body = server.requests[-1].content.decode()
    assert 'start="20251109T210000Z"' in body
    assert 'end="20251116T210000Z"' in body
