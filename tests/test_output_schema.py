# tests/test_output_schema.py

from __future__ import annotations

import pytest

from gobii_tasks.tasks.output_schema import (
    ArraySchema,
    BooleanSchema,
    NumberSchema,
    ObjectSchema,
    SchemaError,
    StringSchema,
    sample_schema,
    schema_from_json,
    schema_from_wire,
    schema_to_json,
    schema_to_wire,
)


def test_nested_schema_wire_shape() -> None:
    schema = ObjectSchema(
        properties={
            "title": StringSchema(),
            "prices": ArraySchema(items=NumberSchema()),
            "meta": ObjectSchema(properties={"in_stock": BooleanSchema()}),
        }
    )

    assert schema_to_wire(schema) == {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "prices": {"type": "array", "items": {"type": "number"}},
            "meta": {"type": "object", "properties": {"in_stock": {"type": "boolean"}}},
        },
    }
    assert schema_from_wire(schema_to_wire(schema)) == schema


def test_sample_schema_matches_default() -> None:
    assert schema_to_wire(sample_schema()) == {
        "type": "object",
        "properties": {"name": {"type": "string"}, "value": {"type": "number"}},
    }


def test_json_helpers_treat_empty_as_no_schema() -> None:
    assert schema_to_json(None) is None
    assert schema_from_json(None) is None
    assert schema_from_json("") is None
    assert schema_from_json('{"type": "array", "items": {"type": "string"}}') == ArraySchema(
        items=StringSchema()
    )


@pytest.mark.parametrize(
    "data",
    [
        [],
        {},
        {"type": 3},
        {"type": "date"},
        {"type": "object"},
        {"type": "object", "properties": []},
        {"type": "array"},
        {"type": "array", "items": {"type": "nope"}},
    ],
)
def test_invalid_schema_nodes_are_rejected(data) -> None:
    with pytest.raises(SchemaError):
        schema_from_wire(data)


def test_invalid_json_text_is_rejected() -> None:
    with pytest.raises(SchemaError):
        schema_from_json("{not json")
