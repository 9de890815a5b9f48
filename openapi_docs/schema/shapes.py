"""
Data Shapes and the Component Table

A *data shape* is the language-neutral description of a payload: a tagged
variant over primitives, arrays, objects, enumerations and references to
named objects.  Named objects and enumerations live in a
:class:`SchemaComponentTable` so that each one is described exactly once and
every other occurrence is a reference.

Recursive types never recurse inline: an object that contains itself does so
through an :class:`ObjectRef`, which is what guarantees that walking a shape
always terminates.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple, Union

from openapi_docs.core.exceptions import ComponentConflict, ShapeCycleUnresolved

__all__: list[str] = [
    "PrimitiveKind",
    "Primitive",
    "ArrayShape",
    "ObjectShape",
    "EnumRef",
    "ObjectRef",
    "DataShape",
    "SchemaComponentTable",
    "iter_references",
]


class PrimitiveKind(str, Enum):
    int32 = "int32"
    int64 = "int64"
    float = "float"
    double = "double"
    string = "string"
    boolean = "boolean"
    date = "date"
    date_time = "date-time"
    uuid = "uuid"
    binary = "binary"
    byte = "byte"

    @property
    def type_and_format(self) -> Tuple[str, Optional[str]]:
        """Return the JSON-schema ``type`` and ``format`` of this kind."""
        return _TYPE_AND_FORMAT[self]


_TYPE_AND_FORMAT: Dict[PrimitiveKind, Tuple[str, Optional[str]]] = {
    PrimitiveKind.int32: ("integer", "int32"),
    PrimitiveKind.int64: ("integer", "int64"),
    PrimitiveKind.float: ("number", "float"),
    PrimitiveKind.double: ("number", "double"),
    PrimitiveKind.string: ("string", None),
    PrimitiveKind.boolean: ("boolean", None),
    PrimitiveKind.date: ("string", "date"),
    PrimitiveKind.date_time: ("string", "date-time"),
    PrimitiveKind.uuid: ("string", "uuid"),
    PrimitiveKind.binary: ("string", "binary"),
    PrimitiveKind.byte: ("string", "byte"),
}


@dataclass(frozen=True)
class Primitive:
    kind: PrimitiveKind


@dataclass(frozen=True)
class ArrayShape:
    items: "DataShape"


@dataclass(frozen=True)
class ObjectShape:
    """
    An object with ordered fields.

    Attributes:
        fields: ``(name, shape)`` pairs in declaration order.
        required: Names of the fields that must be present.
        additional: Shape of free-form extra properties (dictionaries).
        description: Optional documentation for the whole object.
    """

    fields: Tuple[Tuple[str, "DataShape"], ...] = ()
    required: Tuple[str, ...] = ()
    additional: Optional["DataShape"] = None
    description: Optional[str] = None

    @property
    def field_map(self) -> Dict[str, "DataShape"]:
        return dict(self.fields)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)


@dataclass(frozen=True)
class EnumRef:
    """A named enumeration; ``values`` keep declaration order."""

    name: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class ObjectRef:
    name: str


DataShape = Union[Primitive, ArrayShape, ObjectShape, EnumRef, ObjectRef]

ComponentDefinition = Union[ObjectShape, EnumRef]


class _Reserved:
    """Placeholder for a component whose fields are being synthesized."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:  # pragma: no cover – debugging aid
        return f"<reserved {self.name}>"


class SchemaComponentTable:
    """Name → canonical definition of every shared object and enumeration.

    Invariants:
        * a name maps to exactly one definition;
        * defining a name again with an identical shape is a no-op, with a
          different shape it raises :class:`ComponentConflict`;
        * a reserved name must be defined before the table is used to build a
          document (see :meth:`check_complete`).
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Union[ComponentDefinition, _Reserved]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def reserve(self, name: str) -> None:
        """Claim *name* before its definition is known (cycle breaking)."""
        if name not in self._entries:
            self._entries[name] = _Reserved(name)

    def release(self, name: str) -> None:
        """Drop a reservation that will never be defined (failed synthesis)."""
        if self.is_reserved(name):
            del self._entries[name]

    def is_reserved(self, name: str) -> bool:
        return isinstance(self._entries.get(name), _Reserved)

    def define(self, name: str, definition: ComponentDefinition) -> None:
        current = self._entries.get(name)
        if current is None or isinstance(current, _Reserved):
            self._entries[name] = definition
            return
        if current != definition:
            raise ComponentConflict(name)

    def get(self, name: str) -> Optional[ComponentDefinition]:
        entry = self._entries.get(name)
        if isinstance(entry, _Reserved):
            return None
        return entry

    def resolve(self, name: str) -> ComponentDefinition:
        """Return the definition of *name* or raise :class:`ShapeCycleUnresolved`."""
        entry = self._entries.get(name)
        if entry is None or isinstance(entry, _Reserved):
            raise ShapeCycleUnresolved(f"Component '{name}' has no definition")
        return entry

    def items(self) -> Iterator[Tuple[str, ComponentDefinition]]:
        for name in self._entries:
            yield name, self.resolve(name)

    def check_complete(self) -> None:
        """Raise if any reference points at a missing or reserved entry."""
        for name, entry in list(self._entries.items()):
            if isinstance(entry, _Reserved):
                raise ShapeCycleUnresolved(f"Component '{name}' was never defined")
            for ref in iter_references(entry):
                self.resolve(ref)


def iter_references(shape: Optional[DataShape]) -> Iterator[str]:
    """Yield the component names *shape* refers to directly (not transitively)."""

    if shape is None or isinstance(shape, Primitive):
        return
    if isinstance(shape, (ObjectRef, EnumRef)):
        yield shape.name
    elif isinstance(shape, ArrayShape):
        yield from iter_references(shape.items)
    elif isinstance(shape, ObjectShape):
        for _, field_shape in shape.fields:
            yield from iter_references(field_shape)
        yield from iter_references(shape.additional)
