"""Tests for internal elements."""

from lxml import etree

from py_carddav.internal import HTTPError, MalformedRequest, NotAuthenticated
from py_carddav.internal.elements import (
    GET_ETAG,
    Href,
    MultiStatus,
    Response,
    SupportedReportSet,
    new_error_response,
    property_element,
)

NS = {"D": "DAV:", "C": "urn:ietf:params:xml:ns:carddav"}


def test_multistatus_to_xml():
    ms = MultiStatus(
        responses=[
            new_error_response("/container/resource3", HTTPError(423, Exception("locked")))
        ]
    )

    root = ms.to_xml()

    assert root.tag == "{DAV:}multistatus"
    assert root.nsmap["D"] == "DAV:"
    assert root.findtext("D:response/D:href", namespaces=NS) == "/container/resource3"
    assert root.findtext("D:response/D:status", namespaces=NS) == "HTTP/1.1 423 Locked"
    assert "locked" in root.findtext("D:response/D:responsedescription", namespaces=NS)


def test_response_from_properties_groups_by_status():
    resp = Response.from_properties(
        "/addressbooks/alice/personal/a.vcf",
        {
            404: {"{DAV:}displayname": None},
            200: {"{urn:ietf:params:xml:ns:carddav}address-data": "BEGIN:VCARD\n"},
        },
    )

    xml = resp.to_xml()
    propstats = xml.findall("D:propstat", NS)
    assert [ps.findtext("D:status", namespaces=NS) for ps in propstats] == [
        "HTTP/1.1 200 OK",
        "HTTP/1.1 404 Not Found",
    ]
    assert propstats[0].findtext("D:prop/C:address-data", namespaces=NS) == "BEGIN:VCARD\n"
    assert propstats[1].find("D:prop/D:displayname", NS) is not None


def test_response_from_properties_skips_empty_groups():
    resp = Response.from_properties("/x", {200: {}, 404: {}})
    assert resp.propstats == []
    assert resp.to_xml().findtext("D:href", namespaces=NS) == "/x"


def test_response_hrefs_are_percent_encoded():
    resp = Response.from_properties("/addressbooks/alice/personal/John Doe.vcf", {})
    assert str(resp.hrefs[0]) == "/addressbooks/alice/personal/John%20Doe.vcf"

    resp = new_error_response("/addressbooks/alice/personal/Zoë.vcf", HTTPError(404))
    assert str(resp.hrefs[0]) == "/addressbooks/alice/personal/Zo%C3%AB.vcf"


def test_property_element_values():
    href = property_element("{urn:ietf:params:xml:ns:carddav}addressbook-home-set",
                            Href.from_string("addressbooks/alice/"))
    assert href.find("{DAV:}href").text == "addressbooks/alice/"

    assert property_element(GET_ETAG, None).text is None
    assert property_element("{DAV:}getcontentlength", 42).text == "42"

    reports = property_element("{DAV:}supported-report-set", SupportedReportSet(["{X:}r"]))
    assert reports.find("{DAV:}supported-report/{DAV:}report/{X:}r") is not None


def test_new_error_response():
    resp = new_error_response("/a.vcf", HTTPError(404, Exception("gone")))
    assert resp.status.code == 404
    assert "gone" in resp.response_description

    resp = new_error_response("/a.vcf", RuntimeError("boom"))
    assert resp.status.code == 500
    xml = etree.tostring(resp.to_xml(), encoding="unicode")
    assert "HTTP/1.1 500 Internal Server Error" in xml


def test_error_codes():
    assert MalformedRequest().code == 400
    err = NotAuthenticated(realm="contacts")
    assert err.code == 401
    assert err.headers() == {"WWW-Authenticate": 'Basic realm="contacts"'}
    assert str(HTTPError(404, Exception("missing"))) == "404 Not Found: missing"
