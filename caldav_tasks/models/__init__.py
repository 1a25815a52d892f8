from .tasks import CALDAV_TYPE, CaldavIssue, SearchResultItem

__all__ = ["CALDAV_TYPE", "CaldavIssue", "SearchResultItem"]
