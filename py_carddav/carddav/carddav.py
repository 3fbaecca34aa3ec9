"""CardDAV types.

CardDAV is defined in RFC 6352.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# CardDAV capability
CAPABILITY_ADDRESSBOOK = "addressbook"

NAMESPACE = "urn:ietf:params:xml:ns:carddav"

# Collection holding the address book homes of all principals
ADDRESSBOOK_ROOT = "addressbooks"

ADDRESSBOOK = f"{{{NAMESPACE}}}addressbook"
ADDRESS_DATA = f"{{{NAMESPACE}}}address-data"
ADDRESSBOOK_HOME_SET = f"{{{NAMESPACE}}}addressbook-home-set"
SUPPORTED_ADDRESS_DATA = f"{{{NAMESPACE}}}supported-address-data"
MAX_RESOURCE_SIZE = f"{{{NAMESPACE}}}max-resource-size"

REPORT_ADDRESSBOOK_MULTIGET = f"{{{NAMESPACE}}}addressbook-multiget"
REPORT_ADDRESSBOOK_QUERY = f"{{{NAMESPACE}}}addressbook-query"


@dataclass
class Principal:
    """A user principal."""

    path: str
    name: str


@dataclass
class AddressBookHome:
    """Collection of a principal's address books."""

    path: str
    name: str


@dataclass
class AddressBook:
    """CardDAV address book collection."""

    path: str
    name: str = ""
    description: str = ""
    max_resource_size: int = 0


@dataclass
class AddressObject:
    """CardDAV address object (a single vCard resource)."""

    path: str
    name: str
    mod_time: datetime | None = None
    content_length: int = 0
    etag: str = ""


Node = Principal | AddressBookHome | AddressBook | AddressObject


class FilterTest(str, Enum):
    """How the results of several filters are combined."""

    ANYOF = "anyof"
    ALLOF = "allof"


MATCH_TYPES = ("equals", "contains", "starts-with", "ends-with")
COLLATIONS = ("i;unicode-casemap", "i;ascii-casemap", "i;octet")


@dataclass
class TextMatch:
    """Text matching filter."""

    text: str
    negate_condition: bool = False
    match_type: str = "contains"  # equals, contains, starts-with, ends-with
    collation: str = "i;unicode-casemap"


@dataclass
class ParamFilter:
    """Parameter filter for address book queries."""

    name: str
    is_not_defined: bool = False
    text_match: TextMatch | None = None


@dataclass
class PropFilter:
    """Property filter for address book queries."""

    name: str
    is_not_defined: bool = False
    text_matches: list[TextMatch] = field(default_factory=list)
    param_filters: list[ParamFilter] = field(default_factory=list)
    test: FilterTest = FilterTest.ANYOF


@dataclass
class AddressBookQuery:
    """CardDAV addressbook-query REPORT request."""

    prop_filters: list[PropFilter] = field(default_factory=list)
    test: FilterTest = FilterTest.ALLOF
    limit: int | None = None  # None means unlimited
    props: list[str] = field(default_factory=list)


@dataclass
class AddressBookMultiGet:
    """CardDAV addressbook-multiget REPORT request."""

    hrefs: list[str] = field(default_factory=list)
    props: list[str] = field(default_factory=list)
