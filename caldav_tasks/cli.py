import json
from typing import Any, Awaitable, Callable

import anyio
import click

from caldav_tasks.config import DEFAULT_CLIENT_NAME, CaldavConfig, Settings
from caldav_tasks.errors import HandledError
from caldav_tasks.observability import setup_logging
from caldav_tasks.service import CaldavTaskService

Operation = Callable[[CaldavTaskService, CaldavConfig], Awaitable[Any]]


def _to_json(result: Any) -> str:
    if isinstance(result, list):
        data = [item.model_dump(mode="json", by_alias=True) for item in result]
    else:
        data = result.model_dump(mode="json", by_alias=True)
    return json.dumps(data, indent=2, ensure_ascii=False)


def _run(settings: Settings, operation: Operation) -> None:
    try:
        config = settings.to_caldav_config()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    async def main():
        service = CaldavTaskService(
            client_name=settings.client_name, timeout=settings.request_timeout
        )
        try:
            return await operation(service, config)
        finally:
            await service.close()

    try:
        result = anyio.run(main)
    except HandledError as e:
        click.echo(e.message, err=True)
        raise SystemExit(1)

    click.echo(_to_json(result))


@click.group()
@click.option(
    "--url",
    envvar="CALDAV_URL",
    help="CalDAV server root URL (can also use CALDAV_URL env var)",
)
@click.option(
    "--username",
    "-u",
    envvar="CALDAV_USERNAME",
    help="CalDAV username (can also use CALDAV_USERNAME env var)",
)
@click.option(
    "--password",
    "-p",
    envvar="CALDAV_PASSWORD",
    help="CalDAV password (can also use CALDAV_PASSWORD env var)",
)
@click.option(
    "--calendar",
    "-c",
    envvar="CALDAV_CALENDAR",
    help="Calendar display name (can also use CALDAV_CALENDAR env var)",
)
@click.option(
    "--client-name",
    envvar="CALDAV_CLIENT_NAME",
    default=DEFAULT_CLIENT_NAME,
    show_default=True,
    help="Value of the X-Requested-With header",
)
@click.option(
    "--timeout",
    envvar="CALDAV_REQUEST_TIMEOUT",
    type=float,
    default=30.0,
    show_default=True,
    help="HTTP request timeout in seconds",
)
@click.option(
    "--log-level",
    "-l",
    envvar="LOG_LEVEL",
    default="warning",
    show_default=True,
    type=click.Choice(
        ["critical", "error", "warning", "info", "debug"], case_sensitive=False
    ),
    help="Logging level",
)
@click.option(
    "--log-format",
    envvar="LOG_FORMAT",
    default="text",
    show_default=True,
    type=click.Choice(["text", "json"], case_sensitive=False),
    help="Log output format",
)
@click.pass_context
def cli(
    ctx: click.Context,
    url: str | None,
    username: str | None,
    password: str | None,
    calendar: str | None,
    client_name: str,
    timeout: float,
    log_level: str,
    log_format: str,
):
    """Read tasks (VTODOs) from a CalDAV calendar."""
    setup_logging(log_format=log_format, log_level=log_level)
    try:
        ctx.obj = Settings(
            caldav_url=url,
            caldav_username=username,
            caldav_password=password,
            caldav_calendar=calendar,
            client_name=client_name,
            request_timeout=timeout,
            log_format=log_format,
            log_level=log_level,
        )
    except ValueError as e:
        raise click.UsageError(str(e)) from e


@cli.command("list")
@click.pass_obj
def list_tasks(settings: Settings):
    """List open tasks."""
    _run(settings, lambda service, config: service.get_open_tasks(config))


@cli.command()
@click.argument("text")
@click.pass_obj
def search(settings: Settings, text: str):
    """Search open tasks whose summary contains TEXT."""
    _run(settings, lambda service, config: service.search_open_tasks(text, config))


@cli.command()
@click.argument("ids", nargs=-1, required=True)
@click.pass_obj
def get(settings: Settings, ids: tuple[str, ...]):
    """Get tasks by UID. A single UID must exist; several UIDs are filtered."""
    if len(ids) == 1:
        _run(settings, lambda service, config: service.get_by_id(ids[0], config))
    else:
        _run(settings, lambda service, config: service.get_by_ids(list(ids), config))


if __name__ == "__main__":
    cli()
