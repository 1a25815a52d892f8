"""User-facing notifications emitted on expected failures."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class Severity(Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class NotificationMessage(str, Enum):
    """Message keys, translated by the host application."""

    ERR_NETWORK = "CALDAV.ERR_NETWORK"
    CALENDAR_NOT_FOUND = "CALDAV.CALENDAR_NOT_FOUND"
    ISSUE_NOT_FOUND = "CALDAV.ISSUE_NOT_FOUND"


@dataclass(frozen=True)
class Notification:
    severity: Severity
    message: str


class NotificationSink(Protocol):
    def notify(self, notification: Notification) -> None: ...


_LEVELS = {
    Severity.ERROR: logging.ERROR,
    Severity.WARNING: logging.WARNING,
    Severity.INFO: logging.INFO,
}


class LoggingNotificationSink:
    """Default sink for hosts without a UI: notifications go to the log."""

    def notify(self, notification: Notification) -> None:
        message = notification.message
        if isinstance(message, NotificationMessage):
            message = message.value
        logger.log(_LEVELS[notification.severity], "Notification: %s", message)
