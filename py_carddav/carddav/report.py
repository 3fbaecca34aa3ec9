"""CardDAV REPORT request parsing."""

from __future__ import annotations

from lxml import etree

from ..internal import MalformedRequest
from ..internal.elements import NAMESPACE
from .carddav import (
    ADDRESS_DATA,
    COLLATIONS,
    MATCH_TYPES,
    NAMESPACE as CARDDAV_NAMESPACE,
    REPORT_ADDRESSBOOK_MULTIGET,
    REPORT_ADDRESSBOOK_QUERY,
    AddressBookMultiGet,
    AddressBookQuery,
    FilterTest,
    ParamFilter,
    PropFilter,
    TextMatch,
)

# Returned for allprop, which CardDAV clients use to fetch whole cards
ALLPROP_PROPERTIES = [ADDRESS_DATA, f"{{{NAMESPACE}}}getetag"]


def _malformed(msg: str) -> MalformedRequest:
    return MalformedRequest(Exception(f"carddav: {msg}"))


def _parse_requested_properties(root: etree._Element) -> list[str]:
    """Parse the prop/allprop part of a REPORT body."""
    prop_el = root.find(f"{{{NAMESPACE}}}prop")
    if prop_el is not None:
        return [p.tag for p in prop_el if isinstance(p.tag, str)]
    if root.find(f"{{{NAMESPACE}}}allprop") is not None:
        return list(ALLPROP_PROPERTIES)
    return []


def _parse_test(element: etree._Element, default: FilterTest) -> FilterTest:
    value = element.get("test")
    if value is None:
        return default
    try:
        return FilterTest(value)
    except ValueError:
        raise _malformed(f"invalid test attribute {value!r}") from None


def _parse_text_match(element: etree._Element) -> TextMatch:
    match_type = element.get("match-type", "contains")
    if match_type not in MATCH_TYPES:
        raise _malformed(f"invalid match-type {match_type!r}")

    collation = element.get("collation", "i;unicode-casemap")
    if collation not in COLLATIONS:
        raise _malformed(f"unsupported collation {collation!r}")

    negate = element.get("negate-condition", "no")
    if negate not in ("yes", "no"):
        raise _malformed(f"invalid negate-condition {negate!r}")

    return TextMatch(
        text=element.text or "",
        negate_condition=negate == "yes",
        match_type=match_type,
        collation=collation,
    )


def _parse_param_filter(element: etree._Element) -> ParamFilter:
    name = element.get("name")
    if not name:
        raise _malformed("param-filter without name")

    param_filter = ParamFilter(name=name)
    for child in element:
        if child.tag == f"{{{CARDDAV_NAMESPACE}}}is-not-defined":
            param_filter.is_not_defined = True
        elif child.tag == f"{{{CARDDAV_NAMESPACE}}}text-match":
            param_filter.text_match = _parse_text_match(child)
    return param_filter


def _parse_prop_filter(element: etree._Element) -> PropFilter:
    name = element.get("name")
    if not name:
        raise _malformed("prop-filter without name")

    prop_filter = PropFilter(name=name, test=_parse_test(element, FilterTest.ANYOF))
    for child in element:
        if child.tag == f"{{{CARDDAV_NAMESPACE}}}is-not-defined":
            prop_filter.is_not_defined = True
        elif child.tag == f"{{{CARDDAV_NAMESPACE}}}text-match":
            prop_filter.text_matches.append(_parse_text_match(child))
        elif child.tag == f"{{{CARDDAV_NAMESPACE}}}param-filter":
            prop_filter.param_filters.append(_parse_param_filter(child))
    return prop_filter


def _parse_limit(root: etree._Element) -> int | None:
    nresults = root.find(f"{{{CARDDAV_NAMESPACE}}}limit/{{{CARDDAV_NAMESPACE}}}nresults")
    if nresults is None:
        return None
    try:
        limit = int((nresults.text or "").strip())
    except ValueError:
        raise _malformed(f"invalid nresults {nresults.text!r}") from None
    if limit < 1:
        raise _malformed(f"nresults must be positive, got {limit}")
    return limit


def parse_addressbook_query(root: etree._Element) -> AddressBookQuery:
    """Parse an addressbook-query REPORT body.

    Args:
        root: XML root element

    Returns:
        Parsed query

    Raises:
        MalformedRequest: If the body is not a valid addressbook-query
    """
    if root.tag != REPORT_ADDRESSBOOK_QUERY:
        raise _malformed(f"expected addressbook-query, got {root.tag}")

    query = AddressBookQuery(props=_parse_requested_properties(root), limit=_parse_limit(root))

    filter_el = root.find(f"{{{CARDDAV_NAMESPACE}}}filter")
    if filter_el is not None:
        query.test = _parse_test(filter_el, FilterTest.ALLOF)
        for child in filter_el:
            if child.tag == f"{{{CARDDAV_NAMESPACE}}}prop-filter":
                query.prop_filters.append(_parse_prop_filter(child))

    return query


def parse_addressbook_multiget(root: etree._Element) -> AddressBookMultiGet:
    """Parse an addressbook-multiget REPORT body.

    Raises:
        MalformedRequest: If the body is not a valid addressbook-multiget
    """
    if root.tag != REPORT_ADDRESSBOOK_MULTIGET:
        raise _malformed(f"expected addressbook-multiget, got {root.tag}")

    hrefs = []
    for href in root.findall(f"{{{NAMESPACE}}}href"):
        text = (href.text or "").strip()
        if not text:
            raise _malformed("empty href in addressbook-multiget")
        hrefs.append(text)
    return AddressBookMultiGet(hrefs=hrefs, props=_parse_requested_properties(root))
