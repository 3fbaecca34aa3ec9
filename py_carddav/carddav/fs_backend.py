"""Filesystem-based CardDAV backend implementation."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..internal import HTTPError
from .carddav import (
    ADDRESSBOOK_ROOT,
    AddressBook,
    AddressBookHome,
    AddressObject,
    Node,
    Principal,
)

PRINCIPALS_ROOT = "principals"


class LocalCardDAVBackend:
    """Filesystem-based CardDAV backend.

    Layout below root_dir::

        addressbooks/<principal>/<addressbook>/.metadata.json
        addressbooks/<principal>/<addressbook>/<card>.vcf

    Every directory below addressbooks/ is a principal, exposed at
    /principals/<principal>/ with its home at /addressbooks/<principal>/.
    """

    def __init__(self, root_dir: Path) -> None:
        """Initialize backend.

        Args:
            root_dir: Root directory for all data
        """
        self.root_dir: Path = Path(root_dir)
        self.addressbooks_dir: Path = self.root_dir / ADDRESSBOOK_ROOT
        self.addressbooks_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _split(path: str) -> list[str]:
        parts = [p for p in path.split("/") if p]
        if any(p in (".", "..") or p.startswith(".") for p in parts):
            raise HTTPError(404, Exception(f"invalid path: {path}"))
        return parts

    def _read_addressbook_metadata(self, principal: str, addressbook_dir: Path) -> AddressBook:
        """Read address book metadata from directory."""
        path = f"/{ADDRESSBOOK_ROOT}/{principal}/{addressbook_dir.name}/"
        metadata_file: Path = addressbook_dir / ".metadata.json"

        if metadata_file.exists():
            with open(metadata_file) as f:
                data: dict[str, Any] = json.load(f)
            return AddressBook(
                path=path,
                name=str(data.get("name", addressbook_dir.name)),
                description=str(data.get("description", "")),
                max_resource_size=int(data.get("max_resource_size", 0)),
            )
        else:
            return AddressBook(path=path, name=addressbook_dir.name)

    def _card(self, addressbook: AddressBook, file_path: Path) -> AddressObject:
        stat = file_path.stat()
        return AddressObject(
            path=f"{addressbook.path}{file_path.name}",
            name=file_path.name,
            mod_time=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
            content_length=stat.st_size,
            # Derived from stat so that enumeration never reads card bodies
            etag=f"{stat.st_mtime_ns:x}-{stat.st_size:x}",
        )

    def _card_file(self, card: AddressObject) -> Path:
        parts = self._split(card.path)
        return self.root_dir.joinpath(*parts)

    async def get_node(self, path: str) -> Node:
        """Get the node at a path."""
        parts = self._split(path)

        if len(parts) == 2 and parts[0] == PRINCIPALS_ROOT:
            if (self.addressbooks_dir / parts[1]).is_dir():
                return Principal(path=f"/{PRINCIPALS_ROOT}/{parts[1]}/", name=parts[1])

        elif len(parts) >= 2 and parts[0] == ADDRESSBOOK_ROOT:
            principal_dir = self.addressbooks_dir / parts[1]
            if len(parts) == 2 and principal_dir.is_dir():
                return AddressBookHome(path=f"/{ADDRESSBOOK_ROOT}/{parts[1]}/", name=parts[1])

            if len(parts) >= 3:
                addressbook_dir = principal_dir / parts[2]
                if addressbook_dir.is_dir():
                    addressbook = self._read_addressbook_metadata(parts[1], addressbook_dir)
                    if len(parts) == 3:
                        return addressbook
                    file_path = addressbook_dir / parts[3]
                    if len(parts) == 4 and file_path.suffix == ".vcf" and file_path.is_file():
                        return self._card(addressbook, file_path)

        raise HTTPError(404, Exception(f"not found: {path}"))

    async def list_children(self, node: Node) -> list[Node]:
        """List the direct children of a node, sorted by name."""
        if isinstance(node, AddressBookHome):
            home_dir = self.addressbooks_dir / node.name
            return [
                self._read_addressbook_metadata(node.name, item)
                for item in sorted(home_dir.iterdir())
                if item.is_dir() and not item.name.startswith(".")
            ]

        if isinstance(node, AddressBook):
            parts = self._split(node.path)
            addressbook_dir = self.root_dir.joinpath(*parts)
            return [
                self._card(node, file_path)
                for file_path in sorted(addressbook_dir.glob("*.vcf"))
                if file_path.is_file()
            ]

        return []

    async def read_card(self, card: AddressObject) -> bytes:
        """Read the raw vCard data of a card."""
        file_path = self._card_file(card)
        if not file_path.is_file():
            raise HTTPError(404, Exception(f"address object not found: {card.path}"))
        return file_path.read_bytes()
