"""Tests for the CardDAV report engine."""

import pytest
from lxml import etree

from py_carddav.carddav import (
    AddressBook,
    AddressBookMultiGet,
    AddressBookQuery,
    AddressObject,
    CardDAVPlugin,
    Principal,
    PropFilter,
)
from py_carddav.carddav.carddav import (
    ADDRESS_DATA,
    ADDRESSBOOK_HOME_SET,
    REPORT_ADDRESSBOOK_MULTIGET,
    REPORT_ADDRESSBOOK_QUERY,
)
from py_carddav.internal import Depth, HTTPError, Response

BOOK_PATH = "/addressbooks/alice/personal/"


def vcard(name: str, *lines: str) -> str:
    return "\r\n".join(["BEGIN:VCARD", "VERSION:3.0", f"FN:{name}", *lines, "END:VCARD", ""])


class FakeServer:
    """In-memory collaborator that records what the plugin asks for."""

    def __init__(self, cards: dict[str, str]):
        self.book = AddressBook(path=BOOK_PATH, name="personal")
        self.cards = {
            name: AddressObject(path=BOOK_PATH + name, name=name) for name in cards
        }
        self.bodies = cards
        self.fetched_bodies: list[str] = []
        self.fetched_properties: list[tuple[str, list[str]]] = []
        self.failing: set[str] = set()

    def calculate_uri(self, href: str) -> str:
        return href if href.startswith("/") else BOOK_PATH + href

    async def resolve_identifier(self, uri: str):
        if uri.rstrip("/") == BOOK_PATH.rstrip("/"):
            return self.book
        name = uri.rsplit("/", 1)[-1]
        if uri.startswith(BOOK_PATH) and name in self.cards:
            return self.cards[name]
        raise HTTPError(404, Exception(f"not found: {uri}"))

    async def enumerate_children(self, node):
        if node is self.book:
            return list(self.cards.values())
        return []

    async def fetch_record_body(self, card):
        self.fetched_bodies.append(card.name)
        if card.name in self.failing:
            raise HTTPError(404, Exception("gone"))
        return self.bodies[card.name]

    async def fetch_requested_properties(self, uri, names, depth=0):
        self.fetched_properties.append((uri, names))
        await self.resolve_identifier(uri)
        return Response.from_properties(uri, {200: {name: "value" for name in names}})


@pytest.fixture
def server():
    return FakeServer(
        {
            "alice.vcf": vcard("Alice", "EMAIL:alice@example.com"),
            "bob.vcf": vcard("Bob", "NICKNAME:bobby"),
            "carol.vcf": vcard("Carol", "EMAIL:carol@example.com"),
        }
    )


@pytest.fixture
def plugin(server):
    return CardDAVPlugin(server)


def hrefs(ms):
    return [str(r.hrefs[0]) for r in ms.responses]


def test_features_and_supported_reports(plugin):
    assert plugin.get_features() == ["addressbook"]
    assert plugin.get_supported_report_set(AddressBook(path=BOOK_PATH)) == [
        REPORT_ADDRESSBOOK_MULTIGET,
        REPORT_ADDRESSBOOK_QUERY,
    ]
    assert plugin.get_supported_report_set(Principal(path="/principals/alice/", name="alice")) == []


@pytest.mark.asyncio
async def test_multiget_keeps_order_and_reports_failures(plugin, server):
    multiget = AddressBookMultiGet(
        hrefs=["carol.vcf", BOOK_PATH + "missing.vcf", BOOK_PATH + "alice.vcf"],
        props=["{DAV:}getetag"],
    )

    ms = await plugin.addressbook_multiget_report(multiget)

    assert hrefs(ms) == [BOOK_PATH + "carol.vcf", BOOK_PATH + "missing.vcf", BOOK_PATH + "alice.vcf"]
    assert ms.responses[0].propstats[0].status.code == 200
    assert ms.responses[1].status.code == 404
    assert ms.responses[2].propstats[0].status.code == 200


@pytest.mark.asyncio
async def test_multiget_empty(plugin):
    ms = await plugin.addressbook_multiget_report(AddressBookMultiGet())
    assert ms.responses == []


@pytest.mark.asyncio
async def test_query_without_filters_returns_all(plugin, server):
    ms = await plugin.addressbook_query_report(
        AddressBookQuery(props=["{DAV:}getetag"]), BOOK_PATH, Depth.ONE
    )

    assert hrefs(ms) == [BOOK_PATH + "alice.vcf", BOOK_PATH + "bob.vcf", BOOK_PATH + "carol.vcf"]
    assert server.fetched_properties[0] == (BOOK_PATH + "alice.vcf", ["{DAV:}getetag"])


@pytest.mark.asyncio
async def test_query_is_not_defined(plugin):
    query = AddressBookQuery(prop_filters=[PropFilter(name="EMAIL", is_not_defined=True)])

    ms = await plugin.addressbook_query_report(query, BOOK_PATH, Depth.ONE)

    assert hrefs(ms) == [BOOK_PATH + "bob.vcf"]


@pytest.mark.asyncio
async def test_query_joins_href_without_double_slash(plugin):
    ms = await plugin.addressbook_query_report(
        AddressBookQuery(limit=1), BOOK_PATH.rstrip("/"), Depth.ONE
    )
    assert hrefs(ms) == [BOOK_PATH + "alice.vcf"]


@pytest.mark.asyncio
async def test_query_hrefs_are_percent_encoded():
    server = FakeServer({"John Doe.vcf": vcard("John Doe")})
    plugin = CardDAVPlugin(server)

    ms = await plugin.addressbook_query_report(AddressBookQuery(), BOOK_PATH, Depth.ONE)

    assert hrefs(ms) == [BOOK_PATH + "John%20Doe.vcf"]
    assert server.fetched_properties[0][0] == BOOK_PATH + "John Doe.vcf"


@pytest.mark.asyncio
async def test_query_limit_stops_early():
    """Test that no card is fetched once the limit is reached."""
    cards = {}
    for i in range(10):
        # Cards 0, 4 and 8 have a nickname
        lines = ["NICKNAME:n"] if i % 4 == 0 else []
        cards[f"card{i}.vcf"] = vcard(f"Card {i}", *lines)
    server = FakeServer(cards)
    plugin = CardDAVPlugin(server)
    query = AddressBookQuery(prop_filters=[PropFilter(name="NICKNAME", is_not_defined=True)], limit=3)

    ms = await plugin.addressbook_query_report(query, BOOK_PATH, Depth.ONE)

    assert hrefs(ms) == [BOOK_PATH + "card1.vcf", BOOK_PATH + "card2.vcf", BOOK_PATH + "card3.vcf"]
    assert server.fetched_bodies == ["card0.vcf", "card1.vcf", "card2.vcf", "card3.vcf"]


@pytest.mark.asyncio
async def test_query_depth_zero_uses_request_uri(plugin, server):
    uri = BOOK_PATH + "alice.vcf"

    ms = await plugin.addressbook_query_report(AddressBookQuery(), uri, Depth.ZERO)

    assert hrefs(ms) == [uri]
    assert server.fetched_bodies == ["alice.vcf"]


@pytest.mark.asyncio
async def test_query_depth_zero_on_collection_matches_nothing(plugin):
    ms = await plugin.addressbook_query_report(AddressBookQuery(), BOOK_PATH, Depth.ZERO)
    assert ms.responses == []


@pytest.mark.asyncio
async def test_query_skips_unreadable_cards(server):
    server.bodies["bob.vcf"] = "this is not a vcard"
    server.failing.add("carol.vcf")
    plugin = CardDAVPlugin(server)

    ms = await plugin.addressbook_query_report(AddressBookQuery(), BOOK_PATH, Depth.ONE)

    assert hrefs(ms) == [BOOK_PATH + "alice.vcf"]


@pytest.mark.asyncio
async def test_query_uses_injected_parser(server):
    parsed = []

    def parse(data):
        parsed.append(data)
        from py_carddav.tree import read

        return read(data)

    plugin = CardDAVPlugin(server, parse=parse)
    await plugin.addressbook_query_report(AddressBookQuery(), BOOK_PATH, Depth.ONE)

    assert len(parsed) == 3


@pytest.mark.asyncio
async def test_report_dispatch(plugin):
    query = etree.fromstring(
        b'<C:addressbook-query xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:carddav">'
        b'<C:filter><C:prop-filter name="NICKNAME"/></C:filter>'
        b"</C:addressbook-query>"
    )
    ms = await plugin.report(query.tag, query, BOOK_PATH, Depth.ONE)
    assert hrefs(ms) == [BOOK_PATH + "bob.vcf"]

    multiget = etree.fromstring(
        b'<C:addressbook-multiget xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:carddav">'
        b"<D:href>/addressbooks/alice/personal/bob.vcf</D:href>"
        b"</C:addressbook-multiget>"
    )
    ms = await plugin.report(multiget.tag, multiget, BOOK_PATH, Depth.ZERO)
    assert hrefs(ms) == [BOOK_PATH + "bob.vcf"]


@pytest.mark.asyncio
async def test_report_unknown_is_not_handled(plugin):
    root = etree.fromstring(b'<D:sync-collection xmlns:D="DAV:"/>')
    assert await plugin.report(root.tag, root, BOOK_PATH, Depth.ONE) is None


@pytest.mark.asyncio
async def test_before_get_properties_address_data(plugin, server):
    card = server.cards["alice.vcf"]
    requested = [ADDRESS_DATA, "{DAV:}getetag"]
    returned = {}

    await plugin.before_get_properties(card.path, card, requested, returned)

    assert requested == ["{DAV:}getetag"]
    data = returned[200][ADDRESS_DATA]
    assert "\r" not in data
    assert data.startswith("BEGIN:VCARD\nVERSION:3.0\nFN:Alice\n")


@pytest.mark.asyncio
async def test_before_get_properties_home_set(plugin):
    principal = Principal(path="/principals/alice/", name="alice")
    requested = [ADDRESSBOOK_HOME_SET]
    returned = {}

    await plugin.before_get_properties(principal.path, principal, requested, returned)

    assert requested == []
    assert str(returned[200][ADDRESSBOOK_HOME_SET]) == "addressbooks/alice/"


@pytest.mark.asyncio
async def test_before_get_properties_ignores_other_nodes(plugin, server):
    requested = [ADDRESS_DATA, ADDRESSBOOK_HOME_SET]
    returned = {}

    await plugin.before_get_properties(BOOK_PATH, server.book, requested, returned)

    assert requested == [ADDRESS_DATA, ADDRESSBOOK_HOME_SET]
    assert returned == {}
