"""Read vCard/iCalendar text into a component tree."""

from __future__ import annotations

from io import StringIO

from vobject.base import ParseError, getLogicalLines, parseLine

from .element import Component, Parameter, Property


class UnparseableRecord(ValueError):
    """Raised when record text cannot be turned into a component tree."""


def _make_parameters(params: list[list[str]]) -> list[Parameter]:
    parameters = []
    for param in params:
        if len(param) == 1:
            # vCard 2.1 style bare parameter, e.g. TEL;WORK:...
            parameters.append(Parameter("TYPE", [param[0]]))
        else:
            parameters.append(Parameter(param[0], param[1:]))
    return parameters


def read(data: str | bytes) -> Component:
    """Parse a single vCard or iCalendar object.

    Lines are unfolded and tokenized with vobject; the tree keeps the original
    order of all properties and subcomponents.

    Args:
        data: Record text

    Returns:
        Top-level component

    Raises:
        UnparseableRecord: If the text is not a single well-formed component
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnparseableRecord(f"record is not valid UTF-8: {e}") from e

    stack: list[Component] = []
    roots: list[Component] = []

    try:
        for line, line_number in getLogicalLines(StringIO(data)):
            if not line.strip():
                continue
            name, params, value, _group = parseLine(line, line_number)
            name = name.upper()

            if name == "BEGIN":
                stack.append(Component(value.strip()))
            elif name == "END":
                if not stack:
                    raise UnparseableRecord(f"unexpected END:{value} on line {line_number}")
                component = stack.pop()
                if component.name != value.strip().upper():
                    raise UnparseableRecord(
                        f"END:{value} on line {line_number} does not close {component.name}"
                    )
                if stack:
                    stack[-1].add(component)
                else:
                    roots.append(component)
            else:
                if not stack:
                    raise UnparseableRecord(
                        f"property {name} outside of a component on line {line_number}"
                    )
                stack[-1].add(Property(name, value, _make_parameters(params)))
    except ParseError as e:
        raise UnparseableRecord(str(e)) from e

    if stack:
        raise UnparseableRecord(f"component {stack[-1].name} is not terminated")
    if len(roots) != 1:
        raise UnparseableRecord(f"found {len(roots)} components, expected one")

    return roots[0]
