"""Request decoration for CalDAV requests."""

from base64 import b64encode
from typing import Generator

from httpx import Auth, Request, Response

from ..config import DEFAULT_CLIENT_NAME


def basic_auth_header(username: str, password: str) -> str:
    credentials = f"{username}:{password}".encode("utf-8")
    return "Basic " + b64encode(credentials).decode("ascii")


class CaldavAuth(Auth):
    """httpx Auth that identifies the client and sends Basic credentials.

    Passed to the AsyncClient at construction time, so every outgoing request
    (including redirects) carries both headers.
    """

    def __init__(
        self, username: str, password: str, client_name: str = DEFAULT_CLIENT_NAME
    ):
        self.client_name = client_name
        self._auth_header = basic_auth_header(username, password)

    def auth_flow(self, request: Request) -> Generator[Request, Response, None]:
        request.headers["X-Requested-With"] = self.client_name
        request.headers["Authorization"] = self._auth_header
        yield request
