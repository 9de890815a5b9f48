from __future__ import annotations

import pytest

from openapi_docs.core.exceptions import ComponentConflict, ShapeCycleUnresolved
from openapi_docs.schema.shapes import (
    ArrayShape,
    EnumRef,
    ObjectRef,
    ObjectShape,
    Primitive,
    PrimitiveKind,
    SchemaComponentTable,
    iter_references,
)

_STRING = Primitive(PrimitiveKind.string)


def test_define_is_idempotent_for_equal_shapes() -> None:
    table = SchemaComponentTable()
    table.define("Tag", ObjectShape(fields=(("name", _STRING),)))
    table.define("Tag", ObjectShape(fields=(("name", _STRING),)))

    assert len(table) == 1


def test_define_conflicting_shape_raises() -> None:
    table = SchemaComponentTable()
    table.define("Tag", ObjectShape(fields=(("name", _STRING),)))

    with pytest.raises(ComponentConflict):
        table.define("Tag", ObjectShape(fields=(("label", _STRING),)))


def test_reserved_name_is_not_resolvable_until_defined() -> None:
    table = SchemaComponentTable()
    table.reserve("Node")

    assert "Node" in table
    assert table.is_reserved("Node")
    assert table.get("Node") is None
    with pytest.raises(ShapeCycleUnresolved):
        table.resolve("Node")
    with pytest.raises(ShapeCycleUnresolved):
        table.check_complete()

    table.define("Node", ObjectShape(fields=(("next", ObjectRef("Node")),)))
    assert not table.is_reserved("Node")
    table.check_complete()


def test_release_only_drops_reservations() -> None:
    table = SchemaComponentTable()
    table.reserve("Tmp")
    table.release("Tmp")
    table.define("Kept", EnumRef("Kept", ("a",)))
    table.release("Kept")

    assert list(table) == ["Kept"]


def test_check_complete_detects_dangling_reference() -> None:
    table = SchemaComponentTable()
    table.define("Order", ObjectShape(fields=(("pet", ObjectRef("Pet")),)))

    with pytest.raises(ShapeCycleUnresolved):
        table.check_complete()


def test_iter_references_is_direct_only() -> None:
    shape = ObjectShape(
        fields=(
            ("tags", ArrayShape(ObjectRef("Tag"))),
            ("status", EnumRef("Status", ("on", "off"))),
            ("name", _STRING),
        ),
        additional=ObjectRef("Extra"),
    )

    assert list(iter_references(shape)) == ["Tag", "Status", "Extra"]
    assert list(iter_references(None)) == []


def test_primitive_type_and_format() -> None:
    assert PrimitiveKind.int64.type_and_format == ("integer", "int64")
    assert PrimitiveKind.string.type_and_format == ("string", None)
    assert PrimitiveKind.date_time.type_and_format == ("string", "date-time")
