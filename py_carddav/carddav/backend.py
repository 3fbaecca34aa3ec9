"""Interfaces between the CardDAV report engine and its host server."""

from __future__ import annotations

from typing import Protocol

from ..internal import Response
from .carddav import AddressObject, Node


class CardDAVBackend(Protocol):
    """CardDAV storage backend interface.

    Implementations expose principals, address book homes, address books
    and cards as a tree of nodes addressed by path.
    """

    async def get_node(self, path: str) -> Node:
        """Get the node at a path.

        Args:
            path: Resource path (e.g., "/addressbooks/alice/personal/")

        Returns:
            Node for the path

        Raises:
            HTTPError: If there is no such node (404)
        """
        ...

    async def list_children(self, node: Node) -> list[Node]:
        """List the direct children of a node, in a stable order."""
        ...

    async def read_card(self, card: AddressObject) -> bytes:
        """Read the raw vCard data of a card.

        Raises:
            HTTPError: If the card is gone (404)
        """
        ...


class DAVServer(Protocol):
    """Services the report engine consumes from the surrounding server."""

    def calculate_uri(self, href: str) -> str:
        """Turn a client-supplied href into a server path."""
        ...

    async def resolve_identifier(self, uri: str) -> Node:
        """Map a path to a node.

        Raises:
            HTTPError: If there is no such node (404)
        """
        ...

    async def enumerate_children(self, node: Node) -> list[Node]:
        """Return the direct children of a node (depth 1 expansion)."""
        ...

    async def fetch_record_body(self, card: AddressObject) -> str | bytes:
        """Return the raw record text of a card."""
        ...

    async def fetch_requested_properties(
        self, uri: str, names: list[str], depth: int = 0
    ) -> Response:
        """Fetch properties of a path.

        Returns:
            Response with one propstat per status (found, not found, ...)
        """
        ...
