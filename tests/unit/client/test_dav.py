"""Unit tests for the httpx based CalDAV transport."""

import httpx
import pytest

from caldav_tasks.client.auth import CaldavAuth
from caldav_tasks.client.dav import (
    CalDAVConnection,
    CalendarInfo,
    DAVError,
    calendar_uri_from_url,
)
from caldav_tasks.client.queries import build_open_todos_filter

pytestmark = pytest.mark.unit

ROOT = "https://dav.example.com/remote.php/dav/"

PRINCIPAL_RESPONSE = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:">
    <d:response>
        <d:href>/remote.php/dav/</d:href>
        <d:propstat>
            <d:prop>
                <d:current-user-principal>
                    <d:href>/remote.php/dav/principals/users/alice/</d:href>
                </d:current-user-principal>
            </d:prop>
            <d:status>HTTP/1.1 200 OK</d:status>
        </d:propstat>
    </d:response>
</d:multistatus>"""

HOME_SET_RESPONSE = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:" xmlns:cal="urn:ietf:params:xml:ns:caldav">
    <d:response>
        <d:href>/remote.php/dav/principals/users/alice/</d:href>
        <d:propstat>
            <d:prop>
                <cal:calendar-home-set>
                    <d:href>/remote.php/dav/calendars/alice/</d:href>
                </cal:calendar-home-set>
            </d:prop>
            <d:status>HTTP/1.1 200 OK</d:status>
        </d:propstat>
    </d:response>
</d:multistatus>"""

CALENDARS_RESPONSE = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:" xmlns:cal="urn:ietf:params:xml:ns:caldav">
    <d:response>
        <d:href>/remote.php/dav/calendars/alice/</d:href>
        <d:propstat>
            <d:prop>
                <d:resourcetype><d:collection/></d:resourcetype>
            </d:prop>
            <d:status>HTTP/1.1 200 OK</d:status>
        </d:propstat>
    </d:response>
    <d:response>
        <d:href>/remote.php/dav/calendars/alice/personal/</d:href>
        <d:propstat>
            <d:prop>
                <d:displayname>Personal</d:displayname>
                <d:resourcetype><d:collection/><cal:calendar/></d:resourcetype>
            </d:prop>
            <d:status>HTTP/1.1 200 OK</d:status>
        </d:propstat>
    </d:response>
    <d:response>
        <d:href>/remote.php/dav/calendars/alice/tasks/</d:href>
        <d:propstat>
            <d:prop>
                <d:resourcetype><d:collection/><cal:calendar/></d:resourcetype>
            </d:prop>
            <d:status>HTTP/1.1 200 OK</d:status>
        </d:propstat>
        <d:propstat>
            <d:prop>
                <d:displayname/>
            </d:prop>
            <d:status>HTTP/1.1 404 Not Found</d:status>
        </d:propstat>
    </d:response>
    <d:response>
        <d:href>/remote.php/dav/calendars/alice/inbox/</d:href>
        <d:propstat>
            <d:prop>
                <d:displayname>Inbox</d:displayname>
                <d:resourcetype><d:collection/><cal:schedule-inbox/></d:resourcetype>
            </d:prop>
            <d:status>HTTP/1.1 200 OK</d:status>
        </d:propstat>
    </d:response>
</d:multistatus>"""

REPORT_RESPONSE = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:" xmlns:cal="urn:ietf:params:xml:ns:caldav">
    <d:response>
        <d:href>/remote.php/dav/calendars/alice/tasks/U1.ics</d:href>
        <d:propstat>
            <d:prop>
                <d:getetag>"etag-1"</d:getetag>
                <cal:calendar-data>BEGIN:VCALENDAR&#13;
VERSION:2.0&#13;
BEGIN:VTODO&#13;
UID:U1&#13;
END:VTODO&#13;
END:VCALENDAR&#13;
</cal:calendar-data>
            </d:prop>
            <d:status>HTTP/1.1 200 OK</d:status>
        </d:propstat>
    </d:response>
    <d:response>
        <d:href>/remote.php/dav/calendars/alice/tasks/gone.ics</d:href>
        <d:status>HTTP/1.1 404 Not Found</d:status>
    </d:response>
</d:multistatus>"""


class FakeCalDAVServer:
    """Routes requests by method and path, recording every request."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.dav_header = "1, 2, 3, calendar-access"
        self.routes = {
            ("PROPFIND", "/remote.php/dav/"): PRINCIPAL_RESPONSE,
            ("PROPFIND", "/remote.php/dav/principals/users/alice/"): HOME_SET_RESPONSE,
            ("PROPFIND", "/remote.php/dav/calendars/alice/"): CALENDARS_RESPONSE,
            ("REPORT", "/remote.php/dav/calendars/alice/tasks/"): REPORT_RESPONSE,
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "OPTIONS":
            return httpx.Response(200, headers={"DAV": self.dav_header})
        body = self.routes.get((request.method, request.url.path))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(
            207, content=body, headers={"Content-Type": "application/xml"}
        )


@pytest.fixture
def server() -> FakeCalDAVServer:
    return FakeCalDAVServer()


@pytest.fixture
async def connection(server):
    conn = CalDAVConnection(
        ROOT,
        auth=CaldavAuth("alice", "secret", client_name="test-client"),
        transport=httpx.MockTransport(server),
    )
    yield conn
    await conn.close()


async def test_connect_discovers_principal_and_calendar_home(connection, server):
    await connection.connect(enable_caldav=True)

    assert connection.principal_url == (
        "https://dav.example.com/remote.php/dav/principals/users/alice/"
    )
    assert connection.calendar_homes == [
        "https://dav.example.com/remote.php/dav/calendars/alice/"
    ]
    assert [r.method for r in server.requests] == ["OPTIONS", "PROPFIND", "PROPFIND"]
    assert all(r.headers["Depth"] == "0" for r in server.requests[1:])


async def test_every_request_carries_identification_and_credentials(
    connection, server
):
    await connection.connect()

    for request in server.requests:
        assert request.headers["X-Requested-With"] == "test-client"
        assert request.headers["Authorization"] == "Basic YWxpY2U6c2VjcmV0"


async def test_connect_requires_calendar_access(connection, server):
    server.dav_header = "1, 2"

    with pytest.raises(DAVError, match="calendar-access"):
        await connection.connect(enable_caldav=True)


async def test_connect_propagates_http_errors():
    conn = CalDAVConnection(
        ROOT, transport=httpx.MockTransport(lambda request: httpx.Response(401))
    )
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await conn.connect()
    finally:
        await conn.close()


async def test_invalid_xml_is_a_dav_error(connection, server):
    server.routes[("PROPFIND", "/remote.php/dav/")] = b"<not-xml"

    with pytest.raises(DAVError, match="Invalid XML"):
        await connection.connect()


async def test_find_all_calendars_keeps_only_calendars(connection, server):
    calendars = await connection.find_all_calendars(
        "https://dav.example.com/remote.php/dav/calendars/alice/"
    )

    assert calendars == [
        CalendarInfo(
            url="https://dav.example.com/remote.php/dav/calendars/alice/personal/",
            displayname="Personal",
        ),
        CalendarInfo(
            url="https://dav.example.com/remote.php/dav/calendars/alice/tasks/",
            displayname=None,
        ),
    ]
    assert [c.name for c in calendars] == ["Personal", "tasks"]
    assert server.requests[-1].headers["Depth"] == "1"


async def test_calendar_query_returns_raw_todos(connection, server):
    calendar = CalendarInfo(
        url="https://dav.example.com/remote.php/dav/calendars/alice/tasks/"
    )

    todos = await connection.calendar_query(calendar, build_open_todos_filter(True))

    assert len(todos) == 1
    assert todos[0].url == (
        "https://dav.example.com/remote.php/dav/calendars/alice/tasks/U1.ics"
    )
    assert todos[0].etag == '"etag-1"'
    assert "UID:U1" in todos[0].data

    request = server.requests[-1]
    assert request.method == "REPORT"
    assert request.headers["Depth"] == "1"
    assert b"calendar-query" in request.content
    assert b"is-not-defined" in request.content


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://x/a/", "a"),
        ("https://x/calendars/alice/work", "work"),
        ("https://x/", "x"),
    ],
)
def test_calendar_uri_from_url(url, expected):
    assert calendar_uri_from_url(url) == expected
