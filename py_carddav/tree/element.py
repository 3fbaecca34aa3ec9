"""Component/property tree for vCard and iCalendar style records.

A record is a tree of named elements. A Component (for example VCARD or
VEVENT) starts with BEGIN:NAME and ends with END:NAME, and wraps an ordered
list of child properties and components. A Property is a single NAME:VALUE
line.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

EOL = "\r\n"

# Content lines longer than this are folded (RFC 6350 section 3.2)
MAX_LINE_LENGTH = 75

Scalar = str | int | float | bool


class InvalidArgument(ValueError):
    """Raised when the tree mutation API is called with bad arguments."""


def is_scalar(value: object) -> bool:
    """Check if a value can be stored as a property value."""
    return isinstance(value, (str, int, float, bool))


class ElementList:
    """Ordered, non-owning view over elements owned by a component."""

    def __init__(self, elements: Sequence[Element]) -> None:
        self._elements = list(elements)

    def __iter__(self) -> Iterator[Element]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __getitem__(self, index: int) -> Element:
        return self._elements[index]

    def __repr__(self) -> str:
        return f"ElementList({[e.name for e in self._elements]!r})"


class Element(ABC):
    """Base class for properties and components."""

    name: str

    def __init__(self, iterator: ElementList | None = None) -> None:
        self._iterator = iterator

    @abstractmethod
    def serialize(self) -> str:
        """Turn the element back into its text form."""

    def _default_iterator(self) -> ElementList:
        return ElementList([self])

    def __iter__(self) -> Iterator[Element]:
        if self._iterator is not None:
            return iter(self._iterator)
        return iter(self._default_iterator())

    def set_iterator(self, iterator: ElementList) -> None:
        """Override what iterating over this element yields.

        Used by Component.get_by_name so that the returned element iterates
        over all of its same-named siblings.
        """
        self._iterator = iterator


@dataclass
class Parameter:
    """A property parameter, e.g. TYPE=WORK,VOICE."""

    name: str
    values: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.name = self.name.upper()

    def serialize(self) -> str:
        values = [f'"{v}"' if any(c in v for c in ":;,") else v for v in self.values]
        return f"{self.name}={','.join(values)}"


class Property(Element):
    """A single NAME:VALUE content line."""

    def __init__(
        self,
        name: str,
        value: Scalar = "",
        parameters: list[Parameter] | None = None,
        iterator: ElementList | None = None,
    ) -> None:
        super().__init__(iterator)
        self.name = name.upper()
        self.value = value
        self.parameters: list[Parameter] = list(parameters) if parameters else []

    def __str__(self) -> str:
        if isinstance(self.value, bool):
            return "TRUE" if self.value else "FALSE"
        return str(self.value)

    def __repr__(self) -> str:
        return f"Property({self.name!r}, {self.value!r})"

    def get_parameters(self, name: str) -> list[Parameter]:
        """Return all parameters with the given name (case-insensitive)."""
        name = name.upper()
        return [p for p in self.parameters if p.name == name]

    def serialize(self) -> str:
        line = self.name
        for param in self.parameters:
            line += ";" + param.serialize()
        value = str(self).replace("\r\n", "\n").replace("\n", "\\n")
        line += ":" + value
        return fold_line(line) + EOL


def fold_line(line: str) -> str:
    """Fold a content line so no physical line exceeds MAX_LINE_LENGTH octets.

    Lines are measured in UTF-8 and never split inside a multibyte character.
    """
    if len(line.encode("utf-8")) <= MAX_LINE_LENGTH:
        return line

    chunks = []
    current = ""
    size = 0
    limit = MAX_LINE_LENGTH
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > limit:
            chunks.append(current)
            current = ""
            size = 0
            # Continuation lines start with a space, which counts towards the limit
            limit = MAX_LINE_LENGTH - 1
        current += char
        size += width
    chunks.append(current)
    return (EOL + " ").join(chunks)


class Component(Element):
    """A named BEGIN/END block wrapping child properties and components.

    By default a component iterates over its own children, but this can be
    overridden with the iterator argument.
    """

    def __init__(self, name: str, iterator: ElementList | None = None) -> None:
        super().__init__(iterator)
        self.name = name.upper()
        self.children: list[Element] = []

    def __repr__(self) -> str:
        return f"Component({self.name!r}, children={len(self.children)})"

    def __len__(self) -> int:
        return len(self.children)

    def _default_iterator(self) -> ElementList:
        return ElementList(self.children)

    def serialize(self) -> str:
        """Turn the component and its subtree back into text."""
        parts = [f"BEGIN:{self.name}{EOL}"]
        parts.extend(child.serialize() for child in self.children)
        parts.append(f"END:{self.name}{EOL}")
        return "".join(parts)

    def add(self, item: Element | str, value: Scalar | None = None) -> None:
        """Add a new child element.

        Can be called as ``add(element)`` to append an existing property or
        component, or as ``add(name, value)`` to append a new property.

        Raises:
            InvalidArgument: If an element is passed together with a value, if
                the value for a new property is not scalar, or if item is
                neither an element nor a string
        """
        if isinstance(item, Element):
            if value is not None:
                raise InvalidArgument(
                    "the second argument must not be specified when passing an element"
                )
            self.children.append(item)
        elif isinstance(item, str):
            if not is_scalar(value):
                raise InvalidArgument("the second argument must be scalar")
            self.children.append(Property(item, value))
        else:
            raise InvalidArgument("the first argument must either be an element or a string")

    def children_list(self) -> ElementList:
        """Return a view over all current children, ignoring any override."""
        return ElementList(self.children)

    def get_by_name(self, name: str) -> Element | None:
        """Look up a child by name (case-insensitive).

        Returns:
            None if no child has this name. Otherwise the first matching child,
            whose iteration is set to every matching child in original order.
        """
        name = name.upper()
        matches = [child for child in self.children if child.name == name]
        if not matches:
            return None

        first = matches[0]
        first.set_iterator(ElementList(matches))
        return first

    def has(self, name: str) -> bool:
        """Check if a child with the given name exists (case-insensitive)."""
        name = name.upper()
        return any(child.name == name for child in self.children)

    def set_by_name(self, name: str, value: Element | Scalar) -> None:
        """Set a child by name.

        Replaces the first child with the same name in place. If there is no
        such child, the new element is appended. To add another element with
        the same name, use add().

        Args:
            name: Child name (case-insensitive)
            value: Component, Property, or a scalar that is wrapped in a
                Property called ``name``

        Raises:
            InvalidArgument: If value is not an element or a scalar
        """
        if isinstance(value, (Component, Property)):
            element: Element = value
        elif is_scalar(value):
            element = Property(name, value)
        else:
            raise InvalidArgument("value must be a Component, Property or scalar type")

        name = name.upper()
        for index, child in enumerate(self.children):
            if child.name == name:
                self.children[index] = element
                return

        self.children.append(element)
