"""CardDAV request handlers."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import Response

from ..internal import ReportNotImplemented, parse_depth
from ..internal.server import decode_xml_request, serve_multistatus
from .plugin import CardDAVPlugin

logger = logging.getLogger(__name__)


async def handle_carddav_report(request: Request, plugin: CardDAVPlugin) -> Response:
    """Handle a REPORT request.

    Args:
        request: Starlette request
        plugin: CardDAV plugin of the server

    Returns:
        Multi-status response

    Raises:
        MalformedRequest: If the body or the Depth header is invalid
        ReportNotImplemented: If no plugin handles the report
    """
    root = await decode_xml_request(request)
    depth = parse_depth(request.headers.get("depth", "0"))

    logger.debug("REPORT %s on %s (depth %s)", root.tag, request.url.path, depth.name)
    ms = await plugin.report(root.tag, root, request.url.path, depth)
    if ms is None:
        raise ReportNotImplemented(root.tag)

    return serve_multistatus(ms)
