"""Low-level helpers for the CardDAV server."""

from __future__ import annotations

from enum import IntEnum
from http import HTTPStatus


class Depth(IntEnum):
    """Depth indicates whether a request applies to the resource's members.

    Defined in RFC 4918 section 10.2.
    """

    ZERO = 0  # Request applies only to the resource
    ONE = 1  # Request applies to resource and its internal members only
    INFINITY = -1  # Request applies to resource and all of its members


def parse_depth(s: str) -> Depth:
    """Parse a Depth header."""
    if s == "0":
        return Depth.ZERO
    elif s == "1":
        return Depth.ONE
    elif s == "infinity":
        return Depth.INFINITY
    else:
        raise MalformedRequest(Exception("webdav: invalid Depth value"))


class HTTPError(Exception):
    """HTTP error with status code."""

    def __init__(self, code: int, err: Exception | None = None):
        self.code = code
        self.err = err
        super().__init__(str(self))

    def __str__(self) -> str:
        try:
            text = HTTPStatus(self.code).phrase
        except ValueError:
            text = "Unknown"

        s = f"{self.code} {text}"
        if self.err:
            return f"{s}: {self.err}"
        return s


class MalformedRequest(HTTPError):
    """The request body does not have the expected shape."""

    def __init__(self, err: Exception | None = None):
        super().__init__(400, err)


class NotAuthenticated(HTTPError):
    """The client did not provide valid authentication credentials."""

    def __init__(self, err: Exception | None = None, realm: str = "py-carddav"):
        self.realm = realm
        super().__init__(401, err)

    def headers(self) -> dict[str, str]:
        """Headers to send along with the 401 response."""
        return {"WWW-Authenticate": f'Basic realm="{self.realm}"'}


class ReportNotImplemented(HTTPError):
    """No plugin handles the requested REPORT."""

    def __init__(self, report_name: str):
        self.report_name = report_name
        super().__init__(403, Exception(f"report {report_name} not implemented"))

