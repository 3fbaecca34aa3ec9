"""Internal server utilities for WebDAV."""

from __future__ import annotations

from lxml import etree
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from .elements import MultiStatus
from .internal import HTTPError, MalformedRequest, NotAuthenticated


def serve_error(err: Exception) -> StarletteResponse:
    """Serve an error response."""
    code = 500
    headers: dict[str, str] = {}
    if isinstance(err, HTTPError):
        code = err.code
    if isinstance(err, NotAuthenticated):
        headers = err.headers()

    return StarletteResponse(content=str(err), status_code=code, headers=headers)


async def is_content_xml(request: Request) -> bool:
    """Check if request content type is XML."""
    content_type = request.headers.get("content-type", "")
    return "application/xml" in content_type or "text/xml" in content_type


async def decode_xml_request(request: Request) -> etree.Element:
    """Decode XML request body.

    Raises:
        MalformedRequest: If the body is not XML
    """
    if not await is_content_xml(request):
        raise MalformedRequest(Exception("webdav: expected application/xml request"))

    try:
        body = await request.body()
        return etree.fromstring(body)
    except etree.XMLSyntaxError as e:
        raise MalformedRequest(e) from e


async def is_request_body_empty(request: Request) -> bool:
    """Check if request body is empty."""
    body = await request.body()
    return len(body) == 0


def serve_multistatus(ms: MultiStatus) -> StarletteResponse:
    """Serve a multistatus response."""
    xml_elem = ms.to_xml()
    xml_str = etree.tostring(xml_elem, encoding="unicode", pretty_print=True)
    return StarletteResponse(
        content='<?xml version="1.0" encoding="utf-8"?>\n' + xml_str,
        status_code=207,  # Multi-Status
        media_type="application/xml; charset=utf-8",
    )
