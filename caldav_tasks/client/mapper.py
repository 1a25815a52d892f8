"""Conversion of VTODO calendar data into task records."""

import datetime as dt
from typing import List

from icalendar import Calendar
from icalendar.cal import Component

from ..errors import MalformedTaskError
from ..models import CaldavIssue
from .dav import RawTodo


def _first(todo: Component, name: str):
    """Return the first value of a property, which may occur more than once."""
    value = todo.get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _text(todo: Component, name: str) -> str:
    value = _first(todo, name)
    if value is None:
        return ""
    return str(value)


def _raw_time(todo: Component, name: str) -> str:
    """Return a date/date-time property in ISO 8601 form, or ""."""
    prop = _first(todo, name)
    if prop is None:
        return ""
    if not hasattr(prop, "dt"):
        return prop.to_ical().decode("utf-8")
    return prop.dt.isoformat()


def _to_unix_time(value: dt.date | dt.datetime) -> int:
    # Floating times and plain dates are read as UTC
    if not isinstance(value, dt.datetime):
        value = dt.datetime.combine(value, dt.time())
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return int(value.timestamp())


def _categories(todo: Component) -> List[str]:
    """Flatten every CATEGORIES occurrence into one list, keeping order."""
    props = todo.get("categories")
    if props is None:
        return []
    if not isinstance(props, list):
        props = [props]

    labels = []
    for prop in props:
        if hasattr(prop, "cats"):
            labels.extend(str(cat) for cat in prop.cats)
        elif prop:
            labels.append(str(prop))
    return labels


def map_task(raw: RawTodo) -> CaldavIssue:
    """Convert one calendar-query result into a CaldavIssue.

    Raises:
        MalformedTaskError: if the data cannot be parsed, holds no VTODO, or
            lacks UID or LAST-MODIFIED
    """
    try:
        calendar = Calendar.from_ical(raw.data)
    except ValueError as e:
        raise MalformedTaskError(f"Unparsable calendar data: {e}", raw.url) from e

    todos = calendar.walk("VTODO")
    if not todos:
        raise MalformedTaskError("No VTODO component", raw.url)
    todo = todos[0]

    uid = _first(todo, "uid")
    if not uid:
        raise MalformedTaskError("VTODO without UID", raw.url)

    last_modified = _first(todo, "last-modified")
    if not isinstance(getattr(last_modified, "dt", None), dt.date):
        raise MalformedTaskError(f"VTODO {uid} without LAST-MODIFIED", raw.url)

    return CaldavIssue(
        id=str(uid),
        completed="completed" in todo,
        item_url=raw.url,
        summary=_text(todo, "summary"),
        due=_raw_time(todo, "due"),
        start=_raw_time(todo, "dtstart"),
        last_modified=_to_unix_time(last_modified.dt),
        labels=_categories(todo),
        note=_text(todo, "description"),
    )
