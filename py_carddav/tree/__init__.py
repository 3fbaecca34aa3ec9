"""Component/property tree model for vCard and iCalendar data."""

from .element import (
    Component,
    Element,
    ElementList,
    InvalidArgument,
    Parameter,
    Property,
)
from .reader import UnparseableRecord, read

__all__ = [
    "Component",
    "Element",
    "ElementList",
    "InvalidArgument",
    "Parameter",
    "Property",
    "UnparseableRecord",
    "read",
]
