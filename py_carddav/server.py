"""CardDAV server implementation."""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from lxml import etree
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import RedirectResponse
from starlette.responses import Response as StarletteResponse
from starlette.routing import Route

from .carddav import CardDAVBackend, CardDAVPlugin, LocalCardDAVBackend, handle_carddav_report
from .carddav.carddav import (
    ADDRESSBOOK,
    MAX_RESOURCE_SIZE,
    NAMESPACE as CARDDAV_NAMESPACE,
    SUPPORTED_ADDRESS_DATA,
    AddressBook,
    AddressBookHome,
    AddressObject,
    Node,
    Principal,
)
from .internal import (
    Depth,
    GetETag,
    GetLastModified,
    HTTPError,
    MultiStatus,
    NotAuthenticated,
    PropFind,
    ResourceType,
    Response,
    SupportedReportSet,
    parse_depth,
)
from .internal.elements import (
    COLLECTION,
    DISPLAY_NAME,
    GET_CONTENT_LENGTH,
    GET_CONTENT_TYPE,
    GET_ETAG,
    GET_LAST_MODIFIED,
    PRINCIPAL,
    RESOURCE_TYPE,
    SUPPORTED_REPORT_SET,
)
from .internal.server import (
    decode_xml_request,
    is_request_body_empty,
    serve_error,
    serve_multistatus,
)

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["OPTIONS", "GET", "HEAD", "PROPFIND", "REPORT"]


def _create_supported_address_data() -> etree.Element:
    """Create supported-address-data XML element."""
    elem = etree.Element(SUPPORTED_ADDRESS_DATA)

    for version in ("3.0", "4.0"):
        addr_data_type = etree.SubElement(elem, f"{{{CARDDAV_NAMESPACE}}}address-data-type")
        addr_data_type.set("content-type", "text/vcard")
        addr_data_type.set("version", version)

    return elem


class DAVServer:
    """Resolves paths and properties for the CardDAV plugin.

    Implements the carddav.DAVServer interface on top of a storage backend.
    """

    def __init__(self, backend: CardDAVBackend, base_uri: str = "/") -> None:
        self.backend = backend
        self.base_uri = "/" + base_uri.strip("/") + "/" if base_uri.strip("/") else "/"
        self.carddav = CardDAVPlugin(self)

    def calculate_uri(self, href: str) -> str:
        """Turn an absolute or relative href into a server path."""
        path = unquote(urlparse(href).path)
        if not path.startswith("/"):
            path = self.base_uri + path
        return path

    async def resolve_identifier(self, uri: str) -> Node:
        return await self.backend.get_node(uri)

    async def enumerate_children(self, node: Node) -> list[Node]:
        return await self.backend.list_children(node)

    async def fetch_record_body(self, card: AddressObject) -> bytes:
        return await self.backend.read_card(card)

    async def fetch_requested_properties(
        self, uri: str, names: list[str], depth: int = 0
    ) -> Response:
        responses = await self.get_properties_for_path(uri, names, depth)
        return responses[0]

    async def get_properties_for_path(
        self, path: str, names: list[str] | None, depth: int = 0, names_only: bool = False
    ) -> list[Response]:
        """Fetch properties of a path and, with depth != 0, of its children.

        Args:
            path: Resource path
            names: Clark-notation property names, or None for all properties
            depth: 0 for the resource only, otherwise one level of children
            names_only: List the available property names without values
                (PROPFIND propname)

        Returns:
            One response per resource, the requested resource first
        """
        node = await self.resolve_identifier(path)
        nodes: list[tuple[str, Node]] = [(path, node)]
        if depth != 0:
            for child in await self.enumerate_children(node):
                nodes.append((child.path, child))

        if names_only:
            return [self._get_property_names(p, n) for p, n in nodes]
        return [await self._get_properties(p, n, names) for p, n in nodes]

    def _get_property_names(self, path: str, node: Node) -> Response:
        names = list(self._node_properties(node)) + self.carddav.get_property_names(node)
        return Response.from_properties(path, {200: dict.fromkeys(names)})

    async def _get_properties(self, path: str, node: Node, names: list[str] | None) -> Response:
        props = self._node_properties(node)
        requested = list(props) if names is None else list(names)
        returned: dict[int, dict[str, Any]] = {200: {}, 404: {}}

        await self.carddav.before_get_properties(path, node, requested, returned)

        for name in requested:
            if name in props:
                returned[200][name] = props[name]()
            else:
                returned[404][name] = None

        return Response.from_properties(path, returned)

    def _node_properties(self, node: Node) -> dict[str, Callable[[], Any]]:
        """Build property functions for a node."""
        props: dict[str, Callable[[], Any]] = {
            DISPLAY_NAME: lambda: node.name,
            SUPPORTED_REPORT_SET: lambda: SupportedReportSet(
                self.carddav.get_supported_report_set(node)
            ),
        }

        if isinstance(node, Principal):
            props[RESOURCE_TYPE] = lambda: ResourceType([COLLECTION, PRINCIPAL])
        elif isinstance(node, AddressBookHome):
            props[RESOURCE_TYPE] = lambda: ResourceType([COLLECTION])
        elif isinstance(node, AddressBook):
            props[RESOURCE_TYPE] = lambda: ResourceType([COLLECTION, ADDRESSBOOK])
            props[SUPPORTED_ADDRESS_DATA] = _create_supported_address_data
            if node.max_resource_size:
                props[MAX_RESOURCE_SIZE] = lambda: node.max_resource_size
        elif isinstance(node, AddressObject):
            props[RESOURCE_TYPE] = lambda: ResourceType()
            props[GET_ETAG] = lambda: GetETag(node.etag)
            props[GET_CONTENT_TYPE] = lambda: "text/vcard; charset=utf-8"
            props[GET_CONTENT_LENGTH] = lambda: node.content_length
            if node.mod_time:
                props[GET_LAST_MODIFIED] = lambda: GetLastModified(node.mod_time)

        return props


class Handler:
    """CardDAV HTTP handler."""

    def __init__(
        self,
        server: DAVServer,
        users: dict[str, str] | None = None,
        realm: str = "py-carddav",
        debug: bool = False,
    ):
        """Initialize handler.

        Args:
            server: DAV server with the CardDAV plugin
            users: Map of user name to password; enables Basic authentication
            realm: Authentication realm
            debug: Enable debug logging of requests and responses
        """
        self.server = server
        self.users = users
        self.realm = realm
        self.debug = debug

    def authenticate(self, request: Request) -> str | None:
        """Check Basic credentials.

        Returns:
            User name, or None when authentication is disabled

        Raises:
            NotAuthenticated: If credentials are missing or invalid
        """
        if self.users is None:
            return None

        header = request.headers.get("authorization", "")
        scheme, _, encoded = header.partition(" ")
        if scheme.lower() != "basic" or not encoded:
            raise NotAuthenticated(Exception("no basic authentication headers found"), self.realm)

        try:
            decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise NotAuthenticated(e, self.realm) from e

        username, _, password = decoded.partition(":")
        expected = self.users.get(username)
        if expected is None or not hmac.compare_digest(expected, password):
            raise NotAuthenticated(Exception("username or password does not match"), self.realm)
        return username

    async def handle(self, request: Request) -> StarletteResponse:
        """Handle CardDAV HTTP request.

        Args:
            request: Starlette request

        Returns:
            Starlette response
        """
        if self.debug:
            from .debug import log_request

            # Read and cache the request body
            request_body = await request.body()
            log_request(
                request.method, str(request.url.path), dict(request.headers.items()), request_body
            )

        try:
            response = await self._dispatch(request)
        except Exception as e:
            if not isinstance(e, HTTPError) or e.code >= 500:
                logger.exception("error handling %s %s", request.method, request.url.path)
            response = serve_error(e)

        if self.debug:
            from .debug import log_response

            log_response(response.status_code, dict(response.headers.items()), response.body)

        return response

    async def _dispatch(self, request: Request) -> StarletteResponse:
        user = self.authenticate(request)

        if request.url.path == "/.well-known/carddav":
            target = f"/principals/{user}/" if user else "/"
            return RedirectResponse(url=target, status_code=308)

        method = request.method
        if method == "OPTIONS":
            return self._handle_options()
        elif method in ("GET", "HEAD"):
            return await self._handle_get(request)
        elif method == "PROPFIND":
            return await self._handle_propfind(request)
        elif method == "REPORT":
            return await handle_carddav_report(request, self.server.carddav)
        else:
            raise HTTPError(405, Exception("webdav: unsupported method"))

    def _handle_options(self) -> StarletteResponse:
        caps = ["1", "3"] + self.server.carddav.get_features()
        headers = {
            "DAV": ", ".join(caps),
            "Allow": ", ".join(ALLOWED_METHODS),
        }
        return StarletteResponse(status_code=204, headers=headers)

    async def _handle_get(self, request: Request) -> StarletteResponse:
        node = await self.server.resolve_identifier(request.url.path)
        if not isinstance(node, AddressObject):
            raise HTTPError(405)  # Method Not Allowed

        data = await self.server.fetch_record_body(node)
        headers = {"ETag": f'"{node.etag}"', "Content-Length": str(len(data))}
        if request.method == "HEAD":
            return StarletteResponse(headers=headers, media_type="text/vcard; charset=utf-8")
        return StarletteResponse(
            content=data, headers=headers, media_type="text/vcard; charset=utf-8"
        )

    async def _handle_propfind(self, request: Request) -> StarletteResponse:
        if await is_request_body_empty(request):
            # Empty body means allprop
            propfind = PropFind(allprop=True)
        else:
            propfind = PropFind.from_xml(await decode_xml_request(request))

        depth = parse_depth(request.headers.get("depth", "1"))
        names = propfind.prop.names() if propfind.prop else None

        responses = await self.server.get_properties_for_path(
            request.url.path,
            names,
            0 if depth == Depth.ZERO else 1,
            names_only=propfind.propname,
        )
        return serve_multistatus(MultiStatus(responses=responses))


def create_app(
    directory: Path | str,
    users: dict[str, str] | None = None,
    realm: str = "py-carddav",
    debug: bool = False,
) -> Starlette:
    """Create a Starlette app serving the address books below directory.

    Args:
        directory: Data directory (see LocalCardDAVBackend for the layout)
        users: Map of user name to password; None disables authentication
        realm: Authentication realm
        debug: Enable debug logging

    Returns:
        Starlette application
    """
    server = DAVServer(LocalCardDAVBackend(Path(directory)))
    handler = Handler(server, users=users, realm=realm, debug=debug)

    async def carddav_handler(request: Request) -> StarletteResponse:
        return await handler.handle(request)

    routes = [
        Route("/{path:path}", carddav_handler, methods=ALLOWED_METHODS),
    ]

    return Starlette(routes=routes)
