"""calendar-query filters for VTODO lookups (RFC 4791, section 9.7)."""

from typing import List

from caldav.elements import cdav, dav
from caldav.elements.base import BaseElement


def _vtodo_filter(*conditions: BaseElement) -> List[cdav.CompFilter]:
    vtodo = cdav.CompFilter("VTODO")
    if conditions:
        vtodo += list(conditions)
    return [cdav.CompFilter("VCALENDAR") + vtodo]


def build_open_todos_filter(filter_open: bool) -> List[cdav.CompFilter]:
    """Filter matching every todo, or only todos without COMPLETED."""
    if filter_open:
        return _vtodo_filter(cdav.PropFilter("COMPLETED") + cdav.NotDefined())
    return _vtodo_filter()


def build_find_by_uid_filter(uid: str) -> List[cdav.CompFilter]:
    """Filter matching the todo whose UID equals ``uid``."""
    return _vtodo_filter(cdav.PropFilter("UID") + cdav.TextMatch(uid))


def build_calendar_query(filters: List[cdav.CompFilter]) -> cdav.CalendarQuery:
    """Wrap filters into a calendar-query REPORT body.

    The body asks for the etag and the full calendar data of each match.
    """
    prop = dav.Prop() + [dav.GetEtag(), cdav.CalendarData()]
    return cdav.CalendarQuery() + [prop, cdav.Filter() + filters]
