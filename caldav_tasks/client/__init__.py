from .auth import CaldavAuth
from .dav import CalDAVConnection, CalendarInfo, DAVError, RawTodo
from .mapper import map_task
from .queries import (
    build_calendar_query,
    build_find_by_uid_filter,
    build_open_todos_filter,
)

__all__ = [
    "CaldavAuth",
    "CalDAVConnection",
    "CalendarInfo",
    "DAVError",
    "RawTodo",
    "map_task",
    "build_calendar_query",
    "build_find_by_uid_filter",
    "build_open_todos_filter",
]
