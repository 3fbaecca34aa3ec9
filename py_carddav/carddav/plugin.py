"""CardDAV REPORT engine.

Handles the addressbook-multiget and addressbook-query reports (RFC 6352
sections 8.6 and 8.7) and the CardDAV-specific derived properties.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from lxml import etree

from ..internal import Depth, Href, HTTPError, MultiStatus, Response, new_error_response
from ..tree import Component, UnparseableRecord, read
from .backend import DAVServer
from .carddav import (
    ADDRESS_DATA,
    ADDRESSBOOK_HOME_SET,
    ADDRESSBOOK_ROOT,
    CAPABILITY_ADDRESSBOOK,
    REPORT_ADDRESSBOOK_MULTIGET,
    REPORT_ADDRESSBOOK_QUERY,
    AddressBook,
    AddressBookMultiGet,
    AddressBookQuery,
    AddressObject,
    Node,
    Principal,
)
from .filter import validate_filters
from .report import parse_addressbook_multiget, parse_addressbook_query

logger = logging.getLogger(__name__)


class CardDAVPlugin:
    """Adds CardDAV reports and properties to a WebDAV server.

    The server is passed in explicitly; the plugin keeps no other state, so
    one instance can serve concurrent requests.
    """

    def __init__(
        self, server: DAVServer, parse: Callable[[str | bytes], Component] = read
    ) -> None:
        """Initialize plugin.

        Args:
            server: Collaborator used for path resolution and properties
            parse: Turns raw vCard data into a component tree
        """
        self.server = server
        self.parse = parse

    def get_features(self) -> list[str]:
        """Features for the DAV header of OPTIONS responses."""
        return [CAPABILITY_ADDRESSBOOK]

    def get_supported_report_set(self, node: Node) -> list[str]:
        """Reports available on a node, for {DAV:}supported-report-set."""
        if isinstance(node, (AddressBook, AddressObject)):
            return [REPORT_ADDRESSBOOK_MULTIGET, REPORT_ADDRESSBOOK_QUERY]
        return []

    def get_property_names(self, node: Node) -> list[str]:
        """Names of the properties before_get_properties can compute for a node."""
        if isinstance(node, Principal):
            return [ADDRESSBOOK_HOME_SET]
        if isinstance(node, AddressObject):
            return [ADDRESS_DATA]
        return []

    async def before_get_properties(
        self,
        path: str,
        node: Node,
        requested: list[str],
        returned: dict[int, dict[str, Any]],
    ) -> None:
        """Compute the CardDAV properties that are not stored anywhere.

        Handled names are removed from requested and added to returned[200].
        """
        if isinstance(node, Principal) and ADDRESSBOOK_HOME_SET in requested:
            requested.remove(ADDRESSBOOK_HOME_SET)
            home = f"{ADDRESSBOOK_ROOT}/{node.name}/"
            returned.setdefault(200, {})[ADDRESSBOOK_HOME_SET] = Href.from_string(home)

        if isinstance(node, AddressObject) and ADDRESS_DATA in requested:
            requested.remove(ADDRESS_DATA)
            data = await self.server.fetch_record_body(node)
            if isinstance(data, bytes):
                data = data.decode("utf-8", errors="replace")
            # Carriage returns would be mangled in the XML output
            returned.setdefault(200, {})[ADDRESS_DATA] = data.replace("\r", "")

    async def report(
        self, report_name: str, root: etree._Element, request_uri: str, depth: Depth
    ) -> MultiStatus | None:
        """Handle a REPORT request.

        Args:
            report_name: Clark-notation name of the report (root element tag)
            root: Parsed request body
            request_uri: Path the REPORT was sent to
            depth: Depth header value

        Returns:
            Multi-status result, or None if this plugin does not handle the
            report and the server should fall back to its default handling

        Raises:
            MalformedRequest: If the request body is invalid
        """
        if report_name == REPORT_ADDRESSBOOK_MULTIGET:
            return await self.addressbook_multiget_report(parse_addressbook_multiget(root))
        elif report_name == REPORT_ADDRESSBOOK_QUERY:
            query = parse_addressbook_query(root)
            return await self.addressbook_query_report(query, request_uri, depth)
        else:
            return None

    async def _fetch_properties(self, uri: str, props: list[str]) -> Response:
        try:
            return await self.server.fetch_requested_properties(uri, props, 0)
        except Exception as e:
            logger.warning("failed to fetch properties for %s: %s", uri, e)
            return new_error_response(uri, e)

    async def addressbook_multiget_report(self, multiget: AddressBookMultiGet) -> MultiStatus:
        """Fetch the properties of a list of hrefs.

        Returns exactly one response per href, in request order. Failures are
        reported per href and do not abort the report.
        """
        uris = [self.server.calculate_uri(href) for href in multiget.hrefs]
        # gather() keeps the order of its arguments, not completion order
        responses = await asyncio.gather(
            *(self._fetch_properties(uri, multiget.props) for uri in uris)
        )
        return MultiStatus(responses=list(responses))

    async def _candidates(self, request_uri: str, depth: Depth) -> list[Node]:
        node = await self.server.resolve_identifier(request_uri)
        if depth == Depth.ZERO:
            return [node]
        return await self.server.enumerate_children(node)

    async def _matches(self, card: AddressObject, query: AddressBookQuery) -> bool:
        try:
            tree = self.parse(await self.server.fetch_record_body(card))
        except UnparseableRecord as e:
            logger.warning("skipping unparseable card %s: %s", card.path, e)
            return False
        except HTTPError as e:
            logger.warning("skipping card %s: %s", card.path, e)
            return False
        return validate_filters(tree, query.prop_filters, query.test)

    async def addressbook_query_report(
        self, query: AddressBookQuery, request_uri: str, depth: Depth
    ) -> MultiStatus:
        """Filter the cards at or below request_uri.

        With depth 0 only the request target itself is considered, otherwise
        its direct children. Candidates are evaluated in order and evaluation
        stops as soon as the limit is reached.
        """
        valid: list[AddressObject] = []
        for node in await self._candidates(request_uri, depth):
            if not isinstance(node, AddressObject):
                continue
            if not await self._matches(node, query):
                continue

            valid.append(node)
            if query.limit is not None and len(valid) >= query.limit:
                # We hit the maximum number of items, we can stop now
                logger.debug("addressbook-query limit of %d reached", query.limit)
                break

        responses = []
        for card in valid:
            if depth == Depth.ZERO:
                href = request_uri
            else:
                href = request_uri.rstrip("/") + "/" + card.name
            responses.append(await self._fetch_properties(href, query.props))

        return MultiStatus(responses=responses)
