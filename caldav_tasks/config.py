import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_NAME = "caldav-tasks"
LOG_FORMATS = ("json", "text")


@dataclass(frozen=True)
class CaldavConfig:
    """Connection parameters for a single CalDAV task calendar.

    Instances are immutable and are used as-is to key the connection cache.
    """

    server_url: str
    username: str
    password: str
    calendar_name: str

    @property
    def connection_key(self) -> tuple[str, str, str]:
        """Structured key identifying one authenticated server session."""
        return (self.server_url, self.username, self.password)

    def __repr__(self) -> str:
        return (
            f"CaldavConfig(server_url={self.server_url!r}, "
            f"username={self.username!r}, password='***', "
            f"calendar_name={self.calendar_name!r})"
        )


@dataclass
class Settings:
    """Application settings from environment variables."""

    # CalDAV connection
    caldav_url: Optional[str] = None
    caldav_username: Optional[str] = None
    caldav_password: Optional[str] = None
    caldav_calendar: Optional[str] = None

    # Value sent in the X-Requested-With header of every request
    client_name: str = DEFAULT_CLIENT_NAME
    request_timeout: float = 30.0

    # Logging
    log_format: str = "text"
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration values."""
        if self.request_timeout <= 0:
            raise ValueError(
                f"request_timeout must be positive, got {self.request_timeout}"
            )

        if self.log_format.lower() not in LOG_FORMATS:
            raise ValueError(
                f"Invalid log_format '{self.log_format}'. "
                f"Must be one of: {', '.join(LOG_FORMATS)}"
            )

        if (
            self.caldav_url
            and self.caldav_url.startswith("http://")
            and self.caldav_password
        ):
            logger.warning(
                "CALDAV_URL uses plain http:// - credentials will be sent "
                "unencrypted with every request."
            )

    def to_caldav_config(self) -> CaldavConfig:
        """Build the connection config, failing on missing values.

        Raises:
            ValueError: if any of url, username, password or calendar is unset
        """
        missing = [
            env_name
            for env_name, value in (
                ("CALDAV_URL", self.caldav_url),
                ("CALDAV_USERNAME", self.caldav_username),
                ("CALDAV_PASSWORD", self.caldav_password),
                ("CALDAV_CALENDAR", self.caldav_calendar),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Missing CalDAV configuration: {', '.join(missing)}")

        return CaldavConfig(
            server_url=self.caldav_url,
            username=self.caldav_username,
            password=self.caldav_password,
            calendar_name=self.caldav_calendar,
        )


def get_settings() -> Settings:
    """Get application settings from environment variables.

    Returns:
        Settings object with configuration values
    """
    return Settings(
        caldav_url=os.getenv("CALDAV_URL"),
        caldav_username=os.getenv("CALDAV_USERNAME"),
        caldav_password=os.getenv("CALDAV_PASSWORD"),
        caldav_calendar=os.getenv("CALDAV_CALENDAR"),
        client_name=os.getenv("CALDAV_CLIENT_NAME", DEFAULT_CLIENT_NAME),
        request_timeout=float(os.getenv("CALDAV_REQUEST_TIMEOUT", "30")),
        log_format=os.getenv("LOG_FORMAT", "text"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
