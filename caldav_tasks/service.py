"""Task retrieval from a named CalDAV calendar."""

import logging
from functools import wraps
from typing import Callable, Iterable, List, NoReturn

from httpx import HTTPError

from .cache import CachedConnection, ConnectionCache
from .client.auth import CaldavAuth
from .client.dav import CalDAVConnection, CalendarInfo, DAVError, RawTodo
from .client.mapper import map_task
from .client.queries import build_find_by_uid_filter, build_open_todos_filter
from .config import DEFAULT_CLIENT_NAME, CaldavConfig
from .errors import (
    CalendarNotFoundError,
    HandledError,
    IssueNotFoundError,
    MalformedTaskError,
    NetworkError,
)
from .models import CaldavIssue, SearchResultItem
from .notifications import (
    LoggingNotificationSink,
    Notification,
    NotificationMessage,
    NotificationSink,
    Severity,
)

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (HTTPError, DAVError)

ConnectionFactory = Callable[[CaldavConfig], CalDAVConnection]


def handled_errors(func):
    """Re-raise every failure of a service operation as HandledError."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except HandledError:
            raise
        except Exception as e:
            if not getattr(e, "notified", False):
                logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            raise HandledError.from_exception(e) from e

    return wrapper


class CaldavTaskService:
    """Lists, searches and looks up todos of a CalDAV calendar.

    Connections are cached per (url, username, password) and calendars per
    connection; both caches belong to this instance.
    """

    def __init__(
        self,
        notifier: NotificationSink | None = None,
        cache: ConnectionCache | None = None,
        connection_factory: ConnectionFactory | None = None,
        client_name: str = DEFAULT_CLIENT_NAME,
        timeout: float = 30.0,
    ):
        self._notifier = notifier or LoggingNotificationSink()
        self._cache = cache if cache is not None else ConnectionCache()
        self._connection_factory = connection_factory or self._default_connection
        self.client_name = client_name
        self.timeout = timeout

    def _default_connection(self, config: CaldavConfig) -> CalDAVConnection:
        return CalDAVConnection(
            config.server_url,
            auth=CaldavAuth(config.username, config.password, self.client_name),
            timeout=self.timeout,
        )

    def reset(self) -> None:
        """Forget all cached connections and calendars."""
        self._cache.clear()

    async def close(self) -> None:
        """Close the HTTP clients of all cached connections and reset."""
        await self._cache.close_all()

    def _notify_error(self, message: NotificationMessage) -> None:
        self._notifier.notify(Notification(severity=Severity.ERROR, message=message))

    def _handle_net_err(self, err: Exception) -> NoReturn:
        self._notify_error(NotificationMessage.ERR_NETWORK)
        raise NetworkError(err) from err

    # ============= Connection and Calendar Resolution =============

    async def _connect(self, config: CaldavConfig) -> CachedConnection:
        connection = self._connection_factory(config)
        try:
            await connection.connect(enable_caldav=True)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"CalDAV handshake with {config.server_url} failed: {e}")
            await connection.close()
            self._handle_net_err(e)
        return CachedConnection(connection)

    async def _get_client(self, config: CaldavConfig) -> CachedConnection:
        return await self._cache.get_or_create(
            config.connection_key, lambda: self._connect(config)
        )

    async def _resolve_calendar(
        self, connection: CalDAVConnection, calendar_name: str
    ) -> CalendarInfo:
        try:
            calendars = await connection.find_all_calendars(
                connection.calendar_homes[0]
            )
        except TRANSPORT_ERRORS as e:
            self._handle_net_err(e)

        for calendar in calendars:
            if calendar.name == calendar_name:
                logger.debug(f"Resolved calendar '{calendar_name}' to {calendar.url}")
                return calendar

        self._notify_error(NotificationMessage.CALENDAR_NOT_FOUND)
        raise CalendarNotFoundError(calendar_name)

    async def _get_calendar(
        self, client: CachedConnection, calendar_name: str
    ) -> CalendarInfo:
        return await client.calendars.get_or_create(
            calendar_name,
            lambda: self._resolve_calendar(client.connection, calendar_name),
        )

    # ============= Queries =============

    async def _query(self, config: CaldavConfig, filters) -> List[RawTodo]:
        client = await self._get_client(config)
        calendar = await self._get_calendar(client, config.calendar_name)
        try:
            return await client.connection.calendar_query(calendar, filters)
        except TRANSPORT_ERRORS as e:
            self._handle_net_err(e)

    async def _get_tasks(
        self, config: CaldavConfig, filter_open: bool
    ) -> List[CaldavIssue]:
        todos = await self._query(config, build_open_todos_filter(filter_open))

        tasks = []
        for todo in todos:
            try:
                tasks.append(map_task(todo))
            except MalformedTaskError as e:
                logger.warning(f"Skipping malformed todo: {e}")
        return tasks

    async def _get_task(self, config: CaldavConfig, uid: str) -> CaldavIssue:
        todos = await self._query(config, build_find_by_uid_filter(uid))

        if not todos:
            self._notify_error(NotificationMessage.ISSUE_NOT_FOUND)
            raise IssueNotFoundError(uid)

        return map_task(todos[0])

    # ============= Public Operations =============

    @handled_errors
    async def get_open_tasks(self, config: CaldavConfig) -> List[CaldavIssue]:
        """Return every todo of the configured calendar without COMPLETED."""
        return await self._get_tasks(config, filter_open=True)

    @handled_errors
    async def search_open_tasks(
        self, text: str, config: CaldavConfig
    ) -> List[SearchResultItem]:
        """Return open todos whose summary contains ``text`` (case-sensitive)."""
        tasks = await self._get_tasks(config, filter_open=True)
        return [
            SearchResultItem.from_issue(task) for task in tasks if text in task.summary
        ]

    @handled_errors
    async def get_by_id(self, id: str | int, config: CaldavConfig) -> CaldavIssue:
        """Return the todo with the given UID.

        Raises:
            HandledError: wrapping IssueNotFoundError when no todo matches
        """
        logger.debug(f"Looking up CalDAV task {id!r}")
        if isinstance(id, int):
            id = str(id)
        return await self._get_task(config, id)

    @handled_errors
    async def get_by_ids(
        self, ids: Iterable[str | int], config: CaldavConfig
    ) -> List[CaldavIssue]:
        """Return all todos, open or completed, whose UID is in ``ids``."""
        wanted = {str(id) for id in ids}
        tasks = await self._get_tasks(config, filter_open=False)
        return [task for task in tasks if task.id in wanted]
