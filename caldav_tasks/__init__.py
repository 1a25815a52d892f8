"""
Read-only CalDAV task retrieval: list, search and look up VTODOs of a named
calendar and normalize them into task records.
"""

from .config import CaldavConfig, Settings, get_settings
from .errors import (
    CaldavError,
    CalendarNotFoundError,
    HandledError,
    IssueNotFoundError,
    MalformedTaskError,
    NetworkError,
)
from .models import CALDAV_TYPE, CaldavIssue, SearchResultItem
from .service import CaldavTaskService

__all__ = [
    "CALDAV_TYPE",
    "CaldavConfig",
    "CaldavError",
    "CaldavIssue",
    "CaldavTaskService",
    "CalendarNotFoundError",
    "HandledError",
    "IssueNotFoundError",
    "MalformedTaskError",
    "NetworkError",
    "SearchResultItem",
    "Settings",
    "get_settings",
]
