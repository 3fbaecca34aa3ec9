"""A Python library and server for CardDAV address book reports."""

from .carddav import CardDAVPlugin, LocalCardDAVBackend
from .server import DAVServer, Handler, create_app
from .tree import Component, ElementList, Property, read

__version__ = "0.1.0"

__all__ = [
    "CardDAVPlugin",
    "LocalCardDAVBackend",
    "DAVServer",
    "Handler",
    "create_app",
    "Component",
    "ElementList",
    "Property",
    "read",
]
