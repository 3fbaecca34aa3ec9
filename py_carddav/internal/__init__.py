"""Low-level WebDAV helpers shared by the CardDAV server."""

from .elements import (
    GetETag,
    GetLastModified,
    Href,
    MultiStatus,
    Prop,
    PropFind,
    PropStat,
    ResourceType,
    Response,
    Status,
    SupportedReportSet,
    new_error_response,
)
from .internal import (
    Depth,
    HTTPError,
    MalformedRequest,
    NotAuthenticated,
    ReportNotImplemented,
    parse_depth,
)

__all__ = [
    "Depth",
    "GetETag",
    "GetLastModified",
    "HTTPError",
    "Href",
    "MalformedRequest",
    "MultiStatus",
    "NotAuthenticated",
    "Prop",
    "PropFind",
    "PropStat",
    "ReportNotImplemented",
    "ResourceType",
    "Response",
    "Status",
    "SupportedReportSet",
    "parse_depth",
]
