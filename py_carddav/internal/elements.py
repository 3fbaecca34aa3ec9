"""WebDAV XML elements."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime
from http import HTTPStatus
from typing import Any
from urllib.parse import ParseResult as URL, quote, urlparse

from lxml import etree

from .internal import HTTPError

# WebDAV namespace
NAMESPACE = "DAV:"
NS = {"D": NAMESPACE}

# Common XML names
RESOURCE_TYPE = "{DAV:}resourcetype"
DISPLAY_NAME = "{DAV:}displayname"
GET_CONTENT_LENGTH = "{DAV:}getcontentlength"
GET_CONTENT_TYPE = "{DAV:}getcontenttype"
GET_LAST_MODIFIED = "{DAV:}getlastmodified"
GET_ETAG = "{DAV:}getetag"
COLLECTION = "{DAV:}collection"
PRINCIPAL = "{DAV:}principal"
SUPPORTED_REPORT_SET = "{DAV:}supported-report-set"


@dataclass
class Status:
    """HTTP status for WebDAV responses."""

    code: int
    text: str = ""

    def to_string(self) -> str:
        """Marshal status to text."""
        text = self.text if self.text else HTTPStatus(self.code).phrase
        return f"HTTP/1.1 {self.code} {text}"


@dataclass
class Href:
    """WebDAV href element."""

    url: URL

    def __str__(self) -> str:
        return self.url.geturl()

    @staticmethod
    def from_string(s: str) -> Href:
        """Parse href from string."""
        return Href(url=urlparse(s))

    @staticmethod
    def from_path(path: str) -> Href:
        """Build an href from a decoded server path, percent-encoding it."""
        return Href(url=urlparse(quote(path, safe="/")))


@dataclass
class MultiStatus:
    """WebDAV multistatus response."""

    responses: list[Response] = field(default_factory=list)
    response_description: str = ""

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        root = etree.Element(f"{{{NAMESPACE}}}multistatus", nsmap=NS)
        for resp in self.responses:
            root.append(resp.to_xml())
        if self.response_description:
            desc = etree.SubElement(root, f"{{{NAMESPACE}}}responsedescription")
            desc.text = self.response_description
        return root


@dataclass
class PropStat:
    """WebDAV propstat element."""

    prop: Prop
    status: Status
    response_description: str = ""

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        propstat = etree.Element(f"{{{NAMESPACE}}}propstat")
        propstat.append(self.prop.to_xml())

        status_el = etree.SubElement(propstat, f"{{{NAMESPACE}}}status")
        status_el.text = self.status.to_string()

        if self.response_description:
            desc = etree.SubElement(propstat, f"{{{NAMESPACE}}}responsedescription")
            desc.text = self.response_description

        return propstat


@dataclass
class Prop:
    """WebDAV prop element."""

    raw: list[etree.Element] = field(default_factory=list)

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        prop = etree.Element(f"{{{NAMESPACE}}}prop")
        for elem in self.raw:
            prop.append(elem)
        return prop

    @staticmethod
    def from_xml(element: etree.Element) -> Prop:
        """Parse from XML element."""
        return Prop(raw=list(element))

    def names(self) -> list[str]:
        """Clark-notation names of all properties."""
        return [elem.tag for elem in self.raw if isinstance(elem.tag, str)]


@dataclass
class Response:
    """WebDAV response element."""

    hrefs: list[Href] = field(default_factory=list)
    propstats: list[PropStat] = field(default_factory=list)
    response_description: str = ""
    status: Status | None = None

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        resp = etree.Element(f"{{{NAMESPACE}}}response")

        for href in self.hrefs:
            href_el = etree.SubElement(resp, f"{{{NAMESPACE}}}href")
            href_el.text = str(href)

        for propstat in self.propstats:
            resp.append(propstat.to_xml())

        if self.status:
            status_el = etree.SubElement(resp, f"{{{NAMESPACE}}}status")
            status_el.text = self.status.to_string()

        if self.response_description:
            desc = etree.SubElement(resp, f"{{{NAMESPACE}}}responsedescription")
            desc.text = self.response_description

        return resp

    @staticmethod
    def from_properties(path: str, properties: dict[int, dict[str, Any]]) -> Response:
        """Build a response from property values grouped by status code.

        Args:
            path: Resource path
            properties: Maps status code to {clark name: value}

        Returns:
            Response with one propstat per non-empty status group
        """
        propstats = []
        for code in sorted(properties):
            props = properties[code]
            if not props:
                continue
            raw = [property_element(name, value) for name, value in props.items()]
            propstats.append(PropStat(prop=Prop(raw=raw), status=Status(code=code)))

        return Response(hrefs=[Href.from_path(path)], propstats=propstats)


def new_error_response(path: str, err: Exception) -> Response:
    """Create a new error response."""
    code = 500
    if isinstance(err, HTTPError):
        code = err.code

    href = Href.from_path(path)
    return Response(
        hrefs=[href],
        status=Status(code=code),
        response_description=str(err),
    )


@dataclass
class PropFind:
    """WebDAV PROPFIND request."""

    prop: Prop | None = None
    allprop: bool = False
    propname: bool = False

    @staticmethod
    def from_xml(element: etree.Element) -> PropFind:
        """Parse from XML element."""
        prop_el = element.find(f"{{{NAMESPACE}}}prop")
        prop = Prop.from_xml(prop_el) if prop_el is not None else None

        allprop = element.find(f"{{{NAMESPACE}}}allprop") is not None
        propname = element.find(f"{{{NAMESPACE}}}propname") is not None

        return PropFind(prop=prop, allprop=allprop, propname=propname)


@dataclass
class ResourceType:
    """WebDAV resourcetype property."""

    types: list[str] = field(default_factory=list)

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        rt = etree.Element(RESOURCE_TYPE)
        for t in self.types:
            etree.SubElement(rt, t)
        return rt


@dataclass
class SupportedReportSet:
    """WebDAV supported-report-set property (RFC 3253 section 3.1.5)."""

    reports: list[str] = field(default_factory=list)

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        elem = etree.Element(SUPPORTED_REPORT_SET)
        for report in self.reports:
            supported = etree.SubElement(elem, f"{{{NAMESPACE}}}supported-report")
            report_el = etree.SubElement(supported, f"{{{NAMESPACE}}}report")
            etree.SubElement(report_el, report)
        return elem


@dataclass
class GetLastModified:
    """WebDAV getlastmodified property."""

    last_modified: datetime

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        elem = etree.Element(GET_LAST_MODIFIED)
        elem.text = format_datetime(self.last_modified, usegmt=True)
        return elem


@dataclass
class GetETag:
    """WebDAV getetag property."""

    etag: str

    def to_xml(self) -> etree.Element:
        """Convert to XML element."""
        elem = etree.Element(GET_ETAG)
        # ETags should be quoted
        elem.text = f'"{self.etag}"' if not self.etag.startswith('"') else self.etag
        return elem


def property_element(name: str, value: Any) -> etree.Element:
    """Render a property value as an XML element called name.

    Values can be objects with a to_xml() method, lxml elements, Href (wrapped
    in a DAV:href child), None (empty element), or anything with a text form.
    """
    if hasattr(value, "to_xml"):
        return value.to_xml()
    if isinstance(value, etree._Element):
        return value

    elem = etree.Element(name)
    if isinstance(value, Href):
        href_el = etree.SubElement(elem, f"{{{NAMESPACE}}}href")
        href_el.text = str(value)
    elif value is not None:
        elem.text = str(value)
    return elem
