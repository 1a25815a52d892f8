"""Error kinds raised while retrieving CalDAV tasks."""


class CaldavError(Exception):
    """Base class for expected CalDAV task failures.

    ``notified`` is True when the user has already been told about the
    failure through the notification sink.
    """

    notified: bool = False


class NetworkError(CaldavError):
    """Raised when connecting, enumerating calendars or querying fails."""

    notified = True

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"CALDAV NETWORK ERROR: {cause}")


class CalendarNotFoundError(CaldavError):
    """Raised when no calendar on the server matches the configured name."""

    notified = True

    def __init__(self, calendar_name: str):
        self.calendar_name = calendar_name
        super().__init__(f"CALENDAR NOT FOUND: {calendar_name}")


class IssueNotFoundError(CaldavError):
    """Raised when a UID query returns no todo."""

    notified = True

    def __init__(self, uid: str):
        self.uid = uid
        super().__init__(f"ISSUE NOT FOUND: {uid}")


class MalformedTaskError(CaldavError):
    """Raised when a todo lacks data required for a task record."""

    def __init__(self, message: str, item_url: str | None = None):
        self.item_url = item_url
        if item_url:
            message = f"{message} ({item_url})"
        super().__init__(message)


class HandledError(Exception):
    """Uniform failure returned by every task service operation.

    Wraps the original exception (available as ``__cause__``) so callers can
    tell failures the user was already notified about from unexpected ones.
    """

    def __init__(self, message: str, notified: bool = False):
        self.message = message
        self.notified = notified
        super().__init__(message)

    @classmethod
    def from_exception(cls, err: BaseException) -> "HandledError":
        return cls(f"Caldav: {err}", notified=getattr(err, "notified", False))
