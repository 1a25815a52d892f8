import asyncio
from typing import Callable, List, Optional

import pytest

from caldav_tasks.client.dav import CalendarInfo, RawTodo
from caldav_tasks.config import CaldavConfig
from caldav_tasks.notifications import Notification
from caldav_tasks.service import CaldavTaskService

CALENDAR_HOME = "https://dav.example.com/calendars/alice/"


def make_vtodo(
    uid: Optional[str] = "U1",
    summary: Optional[str] = None,
    last_modified: Optional[str] = "20230101T000000Z",
    extra: tuple[str, ...] = (),
) -> str:
    """Build a VCALENDAR holding one VTODO with the given properties."""
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//caldav-tasks tests//EN",
        "BEGIN:VTODO",
    ]
    if uid is not None:
        lines.append(f"UID:{uid}")
    if summary is not None:
        lines.append(f"SUMMARY:{summary}")
    if last_modified is not None:
        lines.append(f"LAST-MODIFIED:{last_modified}")
    lines.extend(extra)
    lines.extend(["END:VTODO", "END:VCALENDAR", ""])
    return "\r\n".join(lines)


def make_raw_todo(uid: str = "U1", summary: str = "Task", **kwargs) -> RawTodo:
    return RawTodo(
        url=f"{CALENDAR_HOME}tasks/{uid}.ics",
        data=make_vtodo(uid=uid, summary=summary, **kwargs),
    )


class RecordingNotificationSink:
    def __init__(self):
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)


class FakeConnection:
    """In-memory stand-in for CalDAVConnection."""

    def __init__(self, server: "FakeServer", config: CaldavConfig):
        self.server = server
        self.config = config
        self.calendar_homes: List[str] = []
        self.connect_calls = 0
        self.find_calls = 0
        self.queries: list = []
        self.closed = False

    async def connect(self, enable_caldav: bool = True) -> None:
        self.connect_calls += 1
        # Yield so concurrent callers overlap with the handshake
        await asyncio.sleep(0)
        if self.server.connect_error is not None:
            raise self.server.connect_error
        self.calendar_homes = [CALENDAR_HOME]

    async def find_all_calendars(self, home_url: str) -> List[CalendarInfo]:
        self.find_calls += 1
        await asyncio.sleep(0)
        if self.server.find_error is not None:
            raise self.server.find_error
        return list(self.server.calendars)

    async def calendar_query(self, calendar: CalendarInfo, filters) -> List[RawTodo]:
        self.queries.append((calendar, filters))
        if self.server.query_error is not None:
            raise self.server.query_error
        return list(self.server.todos)

    async def close(self) -> None:
        self.closed = True


class FakeServer:
    """Shared state behind every FakeConnection a service creates."""

    def __init__(self):
        self.calendars: List[CalendarInfo] = [
            CalendarInfo(url=f"{CALENDAR_HOME}personal/", displayname="Personal"),
            CalendarInfo(url=f"{CALENDAR_HOME}tasks/", displayname="Tasks"),
        ]
        self.todos: List[RawTodo] = []
        self.connect_error: Optional[Exception] = None
        self.find_error: Optional[Exception] = None
        self.query_error: Optional[Exception] = None
        self.connections: List[FakeConnection] = []

    def create_connection(self, config: CaldavConfig) -> FakeConnection:
        connection = FakeConnection(self, config)
        self.connections.append(connection)
        return connection

    @property
    def queries(self) -> list:
        return [query for conn in self.connections for query in conn.queries]


@pytest.fixture
def caldav_config() -> CaldavConfig:
    return CaldavConfig(
        server_url="https://dav.example.com/",
        username="alice",
        password="secret",
        calendar_name="Tasks",
    )


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def notifier() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def service(fake_server, notifier) -> CaldavTaskService:
    return CaldavTaskService(
        notifier=notifier, connection_factory=fake_server.create_connection
    )


@pytest.fixture
def raw_todo() -> Callable[..., RawTodo]:
    return make_raw_todo


@pytest.fixture
def vtodo() -> Callable[..., str]:
    return make_vtodo
