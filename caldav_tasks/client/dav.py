"""Minimal async CalDAV transport built on httpx."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from caldav.elements import cdav, dav
from caldav.elements.base import BaseElement
from httpx import AsyncBaseTransport, AsyncClient, Auth, Response, Timeout
from lxml import etree

from .queries import build_calendar_query

logger = logging.getLogger(__name__)

NAMESPACES = {
    "d": "DAV:",
    "c": "urn:ietf:params:xml:ns:caldav",
}


class DAVError(Exception):
    """Raised when a server reply is not a usable CalDAV response."""

    pass


@dataclass(frozen=True)
class CalendarInfo:
    """A calendar collection found in a calendar home."""

    url: str
    displayname: Optional[str] = None

    @property
    def name(self) -> str:
        """Display name, or the last URL path segment when there is none."""
        return self.displayname or calendar_uri_from_url(self.url)


@dataclass(frozen=True)
class RawTodo:
    """A calendar object resource returned by a calendar-query."""

    url: str
    data: str
    etag: Optional[str] = None


def calendar_uri_from_url(url: str) -> str:
    if url.endswith("/"):
        url = url[:-1]
    return url[url.rfind("/") + 1 :]


async def log_request(request):
    logger.debug("Request: %s %s", request.method, request.url)
    logger.debug("Headers: %s", request.headers)


async def log_response(response: Response):
    await response.aread()
    logger.debug("Response [%s] %s", response.status_code, response.text)


def _serialize(element: BaseElement) -> bytes:
    return etree.tostring(
        element.xmlelement(), encoding="utf-8", xml_declaration=True
    )


class CalDAVConnection:
    """An authenticated session with one CalDAV server.

    ``connect`` discovers the principal and its calendar homes; afterwards
    calendars can be enumerated and queried.
    """

    def __init__(
        self,
        root_url: str,
        auth: Auth | None = None,
        *,
        timeout: float = 30.0,
        transport: AsyncBaseTransport | None = None,
    ):
        self.root_url = root_url
        self.principal_url: Optional[str] = None
        self.calendar_homes: List[str] = []
        self._client = AsyncClient(
            auth=auth,
            transport=transport,
            event_hooks={"request": [log_request], "response": [log_response]},
            timeout=Timeout(timeout=timeout, connect=5),
            follow_redirects=True,
        )

    async def close(self):
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        body: BaseElement | None = None,
        depth: int | None = None,
    ) -> Response:
        headers = {}
        if depth is not None:
            headers["Depth"] = str(depth)
        content = None
        if body is not None:
            headers["Content-Type"] = 'application/xml; charset="utf-8"'
            content = _serialize(body)

        response = await self._client.request(
            method, url, headers=headers, content=content
        )
        response.raise_for_status()
        return response

    async def _multistatus(
        self,
        method: str,
        url: str,
        body: BaseElement,
        depth: int,
    ) -> tuple[Response, etree._Element]:
        response = await self._request(method, url, body=body, depth=depth)
        try:
            tree = etree.fromstring(response.content)
        except etree.XMLSyntaxError as e:
            raise DAVError(f"Invalid XML in {method} response from {url}: {e}") from e

        if tree.tag != etree.QName(NAMESPACES["d"], "multistatus").text:
            raise DAVError(f"Expected multistatus from {method} {url}, got {tree.tag}")
        return response, tree

    async def _propfind(
        self, url: str, props: Sequence[BaseElement], depth: int = 0
    ) -> tuple[Response, etree._Element]:
        body = dav.Propfind() + [dav.Prop() + list(props)]
        return await self._multistatus("PROPFIND", url, body, depth)

    async def _find_href(self, url: str, prop: BaseElement, path: str) -> str | None:
        response, tree = await self._propfind(url, [prop])
        href = tree.findtext(path, namespaces=NAMESPACES)
        if href is None or not href.strip():
            return None
        return str(response.url.join(href.strip()))

    async def connect(self, enable_caldav: bool = True) -> None:
        """Negotiate capabilities and discover the calendar homes.

        Args:
            enable_caldav: require the server to advertise calendar-access and
                to expose at least one calendar home

        Raises:
            httpx.HTTPError: on network failures and error status codes
            DAVError: when the server is not a usable CalDAV server
        """
        if enable_caldav:
            response = await self._request("OPTIONS", self.root_url)
            capabilities = {
                item.strip() for item in response.headers.get("DAV", "").split(",")
            }
            if "calendar-access" not in capabilities:
                raise DAVError(f"{self.root_url} does not advertise calendar-access")
            logger.debug(f"Server DAV capabilities: {sorted(capabilities)}")

        self.principal_url = (
            await self._find_href(
                self.root_url,
                dav.CurrentUserPrincipal(),
                ".//d:current-user-principal/d:href",
            )
            or self.root_url
        )

        response, tree = await self._propfind(
            self.principal_url, [cdav.CalendarHomeSet()]
        )
        self.calendar_homes = [
            str(response.url.join(href.text.strip()))
            for href in tree.iterfind(".//c:calendar-home-set/d:href", NAMESPACES)
            if href.text and href.text.strip()
        ]

        if enable_caldav and not self.calendar_homes:
            raise DAVError(f"No calendar home found for {self.principal_url}")

        logger.info(
            f"Connected to {self.root_url}, calendar homes: {self.calendar_homes}"
        )

    async def find_all_calendars(self, home_url: str) -> List[CalendarInfo]:
        """List calendar collections directly below ``home_url``."""
        response, tree = await self._propfind(
            home_url, [dav.DisplayName(), dav.ResourceType()], depth=1
        )

        calendars = []
        for response_elem in tree.iterfind("d:response", NAMESPACES):
            if response_elem.find(".//d:resourcetype/c:calendar", NAMESPACES) is None:
                continue
            href = response_elem.findtext("d:href", namespaces=NAMESPACES)
            if not href:
                continue
            displayname = response_elem.findtext(
                ".//d:displayname", namespaces=NAMESPACES
            )
            calendars.append(
                CalendarInfo(
                    url=str(response.url.join(href.strip())),
                    displayname=displayname or None,
                )
            )

        logger.debug(f"Found {len(calendars)} calendars in {home_url}")
        return calendars

    async def calendar_query(
        self, calendar: CalendarInfo, filters: List[cdav.CompFilter]
    ) -> List[RawTodo]:
        """Run a calendar-query REPORT and return the matching resources."""
        response, tree = await self._multistatus(
            "REPORT", calendar.url, build_calendar_query(filters), depth=1
        )

        results = []
        for response_elem in tree.iterfind("d:response", NAMESPACES):
            href = response_elem.findtext("d:href", namespaces=NAMESPACES)
            data = response_elem.findtext(".//c:calendar-data", namespaces=NAMESPACES)
            if not href or not data:
                continue
            results.append(
                RawTodo(
                    url=str(response.url.join(href.strip())),
                    data=data,
                    etag=response_elem.findtext(
                        ".//d:getetag", namespaces=NAMESPACES
                    ),
                )
            )

        logger.debug(f"calendar-query on {calendar.url} returned {len(results)} items")
        return results
