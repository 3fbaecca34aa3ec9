"""Evaluation of addressbook-query filters against vCards.

Implements the prop-filter, param-filter and text-match semantics of
RFC 6352 section 10.5.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from itertools import chain

from ..tree import Component, Property
from .carddav import FilterTest, ParamFilter, PropFilter, TextMatch

_ESCAPE = re.compile(r"\\(.)")

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)

COLLATIONS: dict[str, Callable[[str], str]] = {
    "i;unicode-casemap": str.casefold,
    "i;ascii-casemap": lambda s: s.translate(_ASCII_LOWER),
    "i;octet": lambda s: s,
}


def unescape_value(value: str) -> str:
    """Undo vCard text escaping of commas, semicolons, backslashes and newlines."""
    return _ESCAPE.sub(lambda m: "\n" if m.group(1) in "nN" else m.group(1), value)


def _combine(test: FilterTest) -> Callable[[Iterable[bool]], bool]:
    return all if test == FilterTest.ALLOF else any


def match_text(value: str, text_match: TextMatch) -> bool:
    """Check a single value against a text-match, honouring negation."""
    fold = COLLATIONS[text_match.collation]
    haystack = fold(value)
    needle = fold(text_match.text)

    if text_match.match_type == "equals":
        matches = haystack == needle
    elif text_match.match_type == "starts-with":
        matches = haystack.startswith(needle)
    elif text_match.match_type == "ends-with":
        matches = haystack.endswith(needle)
    else:
        matches = needle in haystack

    return not matches if text_match.negate_condition else matches


def match_param_filter(prop: Property, param_filter: ParamFilter) -> bool:
    """Check a param-filter against one property."""
    params = prop.get_parameters(param_filter.name)
    if param_filter.is_not_defined:
        return not params
    if not params:
        return False
    if param_filter.text_match is None:
        return True
    return any(
        match_text(value, param_filter.text_match) for param in params for value in param.values
    )


def _match_property(prop: Property, prop_filter: PropFilter) -> bool:
    if not prop_filter.text_matches and not prop_filter.param_filters:
        return True
    results = chain(
        (match_text(unescape_value(str(prop)), tm) for tm in prop_filter.text_matches),
        (match_param_filter(prop, pf) for pf in prop_filter.param_filters),
    )
    return _combine(prop_filter.test)(results)


def match_prop_filter(card: Component, prop_filter: PropFilter) -> bool:
    """Check a prop-filter against a card.

    A filter with is-not-defined passes if the card lacks the property. A
    filter without any text-match or param-filter passes if the property
    exists. Otherwise at least one of the same-named properties must match.
    """
    if prop_filter.is_not_defined:
        return not card.has(prop_filter.name)

    first = card.get_by_name(prop_filter.name)
    if first is None:
        return False

    # Iterating the first match yields all properties with this name
    return any(
        _match_property(prop, prop_filter) for prop in first if isinstance(prop, Property)
    )


def validate_filters(
    card: Component, filters: list[PropFilter], test: FilterTest = FilterTest.ALLOF
) -> bool:
    """Check whether a card makes it through a list of filters.

    Args:
        card: Parsed vCard
        filters: Property filters
        test: Whether all filters (allof) or any filter (anyof) must pass

    Returns:
        True if the card matches; always True when there are no filters
    """
    if not filters:
        return True
    return _combine(test)(match_prop_filter(card, f) for f in filters)
