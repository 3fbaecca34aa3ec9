"""CardDAV support for py-carddav."""

from .backend import CardDAVBackend, DAVServer
from .carddav import (
    CAPABILITY_ADDRESSBOOK,
    AddressBook,
    AddressBookHome,
    AddressBookMultiGet,
    AddressBookQuery,
    AddressObject,
    FilterTest,
    ParamFilter,
    Principal,
    PropFilter,
    TextMatch,
)
from .filter import validate_filters
from .fs_backend import LocalCardDAVBackend
from .plugin import CardDAVPlugin
from .server import handle_carddav_report

__all__ = [
    "CardDAVBackend",
    "DAVServer",
    "LocalCardDAVBackend",
    "CardDAVPlugin",
    "CAPABILITY_ADDRESSBOOK",
    "AddressBook",
    "AddressBookHome",
    "AddressBookMultiGet",
    "AddressBookQuery",
    "AddressObject",
    "FilterTest",
    "ParamFilter",
    "Principal",
    "PropFilter",
    "TextMatch",
    "validate_filters",
    "handle_carddav_report",
]
