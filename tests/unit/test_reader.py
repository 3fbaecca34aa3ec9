"""Tests for reading records into a component tree."""

import pytest

from py_carddav.tree import Component, Property, UnparseableRecord, read

VCARD = (
    "BEGIN:VCARD\r\n"
    "VERSION:3.0\r\n"
    "FN:John Doe\r\n"
    "N:Doe;John;;;\r\n"
    "EMAIL;TYPE=WORK:john@example.com\r\n"
    "TEL;TYPE=WORK,VOICE:+1-555-1234\r\n"
    "EMAIL:john@home.example.com\r\n"
    "UID:test-contact-123\r\n"
    "END:VCARD\r\n"
)


def test_read_vcard():
    card = read(VCARD)

    assert isinstance(card, Component)
    assert card.name == "VCARD"
    assert [c.name for c in card.children] == [
        "VERSION",
        "FN",
        "N",
        "EMAIL",
        "TEL",
        "EMAIL",
        "UID",
    ]
    assert card.get_by_name("fn").value == "John Doe"
    assert card.get_by_name("N").value == "Doe;John;;;"


def test_read_parameters():
    card = read(VCARD)

    tel = card.get_by_name("TEL")
    assert len(tel.parameters) == 1
    assert tel.parameters[0].name == "TYPE"
    assert tel.parameters[0].values == ["WORK", "VOICE"]

    email = card.get_by_name("EMAIL")
    assert [p.values for p in email.get_parameters("type")] == [["WORK"]]


def test_read_round_trip():
    """Test that serializing a parsed card reproduces the input."""
    assert read(VCARD).serialize() == VCARD


def test_read_bytes_and_lf_line_endings():
    card = read(b"BEGIN:VCARD\nVERSION:4.0\nFN:Jane Smith\nEND:VCARD\n")
    assert card.get_by_name("FN").value == "Jane Smith"


def test_read_unfolds_lines():
    card = read("BEGIN:VCARD\r\nNOTE:This is a long\r\n  note\r\nEND:VCARD\r\n")
    assert card.get_by_name("NOTE").value == "This is a long note"


def test_read_vcard21_bare_parameter():
    card = read("BEGIN:VCARD\r\nVERSION:2.1\r\nTEL;WORK:+1-555-1234\r\nEND:VCARD\r\n")
    tel = card.get_by_name("TEL")
    assert isinstance(tel, Property)
    assert [(p.name, p.values) for p in tel.parameters] == [("TYPE", ["WORK"])]


def test_read_nested_components():
    cal = read(
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:1\r\n"
        "END:VEVENT\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:2\r\n"
        "END:VEVENT\r\n"
        "END:VCALENDAR\r\n"
    )

    events = cal.get_by_name("VEVENT")
    assert [e.get_by_name("UID").value for e in events] == ["1", "2"]


@pytest.mark.parametrize(
    "data",
    [
        "This is not a valid vCard",
        "",
        "BEGIN:VCARD\r\nFN:No end\r\n",
        "FN:outside\r\n",
        "BEGIN:VCARD\r\nEND:VCALENDAR\r\n",
        "END:VCARD\r\n",
        "BEGIN:VCARD\r\nEND:VCARD\r\nBEGIN:VCARD\r\nEND:VCARD\r\n",
        b"BEGIN:VCARD\r\nFN:\xff\xfe\r\nEND:VCARD\r\n",
    ],
)
def test_read_invalid(data):
    with pytest.raises(UnparseableRecord):
        read(data)
