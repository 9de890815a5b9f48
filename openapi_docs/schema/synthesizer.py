"""
Schema Synthesizer

Turns Python type descriptors into :mod:`openapi_docs.schema.shapes` values.

Accepted descriptors:
- a :class:`PrimitiveKind` or an already-built data shape (returned as is);
- builtins and standard value types listed in ``PRIMITIVE_TYPES``;
- ``List[X]``, ``Sequence[X]``, ``Set[X]``, ``Tuple[X, ...]`` (arrays);
- ``Dict[str, X]`` (free-form object with ``X`` values);
- ``Optional[X]`` (the shape of ``X``; the containing field is optional);
- ``Enum`` subclasses (named enumeration, values in declaration order);
- dataclasses and pydantic models (named object stored in the component
  table, returned as an :class:`ObjectRef`).

Anything else raises :class:`UnsupportedShape`.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import datetime
import decimal
import types
import typing
import uuid
from enum import Enum
from typing import Any, Dict, Final, List, Optional, Set, Tuple, Type

import structlog
from pydantic import BaseModel

from openapi_docs.core.exceptions import UnsupportedShape
from openapi_docs.schema.shapes import (
    ArrayShape,
    DataShape,
    EnumRef,
    ObjectRef,
    ObjectShape,
    Primitive,
    PrimitiveKind,
    SchemaComponentTable,
)

__all__: list[str] = ["PRIMITIVE_TYPES", "SchemaSynthesizer"]

logger = structlog.get_logger(__name__)

# Order matters: ``bool`` is a subclass of ``int`` and ``datetime`` of ``date``,
# so lookups are by exact type, never ``issubclass``.
PRIMITIVE_TYPES: Final[Dict[type, PrimitiveKind]] = {
    bool: PrimitiveKind.boolean,
    int: PrimitiveKind.int64,
    float: PrimitiveKind.double,
    decimal.Decimal: PrimitiveKind.double,
    str: PrimitiveKind.string,
    bytes: PrimitiveKind.binary,
    datetime.datetime: PrimitiveKind.date_time,
    datetime.date: PrimitiveKind.date,
    uuid.UUID: PrimitiveKind.uuid,
}

_ARRAY_ORIGINS: Final[Tuple[Any, ...]] = (
    list,
    set,
    frozenset,
    tuple,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
)

_MAP_ORIGINS: Final[Tuple[Any, ...]] = (
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)

_SHAPE_TYPES: Final[Tuple[type, ...]] = (
    Primitive,
    ArrayShape,
    ObjectShape,
    EnumRef,
    ObjectRef,
)


class SchemaSynthesizer:
    """Build data shapes, registering named ones in a component table.

    One synthesizer is bound to one table.  Named shapes are memoized by name:
    the second request for the same class returns the identical
    :class:`ObjectRef` without walking its fields again.
    """

    def __init__(self, components: Optional[SchemaComponentTable] = None) -> None:
        self.components = components if components is not None else SchemaComponentTable()
        self._seen: Dict[str, Any] = {}
        self._refs: Dict[str, DataShape] = {}
        # Same-named classes whose fields are being walked for comparison.
        self._comparing: Set[type] = set()

    def synthesize(self, descriptor: Any) -> DataShape:
        """Return the data shape for *descriptor*."""
        shape, _ = self._synthesize(descriptor)
        return shape

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _synthesize(self, descriptor: Any) -> Tuple[DataShape, bool]:
        """Return ``(shape, optional)`` where *optional* marks ``Optional[X]``."""

        if isinstance(descriptor, _SHAPE_TYPES):
            return descriptor, False
        if isinstance(descriptor, PrimitiveKind):
            return Primitive(descriptor), False

        origin = typing.get_origin(descriptor)
        if origin is typing.Annotated:
            return self._synthesize(typing.get_args(descriptor)[0])
        if origin is typing.Union or _is_union_type(descriptor):
            return self._synthesize_union(descriptor)
        if origin in _ARRAY_ORIGINS:
            return self._synthesize_array(descriptor, origin), False
        if origin in _MAP_ORIGINS:
            return self._synthesize_map(descriptor), False
        if origin is not None:
            raise UnsupportedShape(f"Unsupported generic type {descriptor!r}")

        if not isinstance(descriptor, type):
            raise UnsupportedShape(f"Unsupported type descriptor {descriptor!r}")

        kind = PRIMITIVE_TYPES.get(descriptor)
        if kind is not None:
            return Primitive(kind), False
        if issubclass(descriptor, Enum):
            return self._synthesize_enum(descriptor), False
        if dataclasses.is_dataclass(descriptor) or issubclass(descriptor, BaseModel):
            return self._synthesize_object(descriptor), False
        if descriptor in (list, tuple, set, dict):
            raise UnsupportedShape(
                f"Bare '{descriptor.__name__}' has no element type; use e.g. List[str]"
            )
        raise UnsupportedShape(f"Unsupported type {descriptor.__qualname__}")

    def _synthesize_union(self, descriptor: Any) -> Tuple[DataShape, bool]:
        members = [arg for arg in typing.get_args(descriptor) if arg is not type(None)]
        if len(members) != 1:
            raise UnsupportedShape(
                f"Only Optional[X] unions are supported, got {descriptor!r}"
            )
        shape, _ = self._synthesize(members[0])
        return shape, True

    def _synthesize_array(self, descriptor: Any, origin: Any) -> ArrayShape:
        args = typing.get_args(descriptor)
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                args = args[:1]
            elif len(set(args)) != 1:
                raise UnsupportedShape(
                    f"Heterogeneous tuples are not supported: {descriptor!r}"
                )
        if not args:
            raise UnsupportedShape(f"Array type without element type: {descriptor!r}")
        return ArrayShape(self.synthesize(args[0]))

    def _synthesize_map(self, descriptor: Any) -> ObjectShape:
        args = typing.get_args(descriptor)
        if len(args) != 2 or args[0] is not str:
            raise UnsupportedShape(
                f"Only string-keyed mappings are supported, got {descriptor!r}"
            )
        return ObjectShape(additional=self.synthesize(args[1]))

    # ------------------------------------------------------------------
    # Named shapes
    # ------------------------------------------------------------------
    def _synthesize_enum(self, enum_type: Type[Enum]) -> EnumRef:
        name = enum_type.__name__
        if self._seen.get(name) is enum_type:
            return typing.cast(EnumRef, self._refs[name])

        values = tuple(_enum_value(member) for member in enum_type)
        ref = EnumRef(name=name, values=values)
        self.components.define(name, ref)
        self._seen[name] = enum_type
        self._refs[name] = ref
        return ref

    def _synthesize_object(self, model: type) -> ObjectRef:
        name = model.__name__
        if self._seen.get(name) is model or model in self._comparing:
            return typing.cast(ObjectRef, self._refs[name])

        ref = ObjectRef(name)
        if name in self._seen:
            # Same name, different class: only allowed if the shapes agree.
            self._comparing.add(model)
            try:
                definition = self._object_definition(model)
            finally:
                self._comparing.discard(model)
            self.components.define(name, definition)
            return typing.cast(ObjectRef, self._refs[name])

        # Reserve and memoize before descending so self-references resolve to
        # ``ref`` instead of recursing.
        self.components.reserve(name)
        self._seen[name] = model
        self._refs[name] = ref
        try:
            definition = self._object_definition(model)
        except UnsupportedShape:
            del self._seen[name]
            del self._refs[name]
            self.components.release(name)
            raise
        self.components.define(name, definition)
        logger.debug("component_synthesized", component=name, fields=len(definition.fields))
        return ref

    def _object_definition(self, model: type) -> ObjectShape:
        fields: List[Tuple[str, DataShape]] = []
        required: List[str] = []
        for field_name, annotation, has_default in _model_fields(model):
            try:
                shape, optional = self._synthesize(annotation)
            except UnsupportedShape as exc:
                raise UnsupportedShape(
                    f"{model.__name__}.{field_name}: {exc}"
                ) from exc
            fields.append((field_name, shape))
            if not has_default and not optional:
                required.append(field_name)
        return ObjectShape(
            fields=tuple(fields),
            required=tuple(required),
            description=_short_doc(model),
        )


def _is_union_type(descriptor: Any) -> bool:
    """True for PEP 604 unions (``int | None``)."""
    return isinstance(descriptor, types.UnionType)


def _enum_value(member: Enum) -> str:
    value = member.value
    return value if isinstance(value, str) else member.name


def _model_fields(model: type) -> List[Tuple[str, Any, bool]]:
    """Return ``(name, annotation, has_default)`` for each field, in order."""

    if isinstance(model, type) and issubclass(model, BaseModel):
        result: List[Tuple[str, Any, bool]] = []
        for name, info in model.model_fields.items():
            result.append((info.alias or name, info.annotation, not info.is_required()))
        return result

    hints = typing.get_type_hints(model, include_extras=True)
    result = []
    for f in dataclasses.fields(model):
        has_default = (
            f.default is not dataclasses.MISSING
            or f.default_factory is not dataclasses.MISSING
        )
        result.append((f.name, hints.get(f.name, f.type), has_default))
    return result


def _short_doc(model: type) -> Optional[str]:
    doc = model.__doc__
    if not doc:
        return None
    # dataclasses synthesize "Name(field: type, ...)" docstrings; skip those.
    if dataclasses.is_dataclass(model) and doc.startswith(f"{model.__name__}("):
        return None
    return doc.strip().splitlines()[0]
