# src/gobii_tasks/tasks/output_schema.py

from __future__ import annotations

"""
Structured-output schema attached to a task.

A schema is a small recursive tree:
- leaves: number, string, boolean
- object: named child schemas
- array: one child schema for the items

Wire shape (JSON), discriminated by "type":
    {"type": "number"}
    {"type": "object", "properties": {"name": {"type": "string"}}}
    {"type": "array", "items": {"type": "boolean"}}
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union


class SchemaError(ValueError):
    """Raised when a wire/JSON value is not a valid output schema."""


@dataclass(frozen=True, slots=True)
class NumberSchema:
    type_name = "number"


@dataclass(frozen=True, slots=True)
class StringSchema:
    type_name = "string"


@dataclass(frozen=True, slots=True)
class BooleanSchema:
    type_name = "boolean"


@dataclass(frozen=True, slots=True)
class ObjectSchema:
    properties: dict[str, OutputSchema] = field(default_factory=dict)

    type_name = "object"


@dataclass(frozen=True, slots=True)
class ArraySchema:
    items: OutputSchema

    type_name = "array"


OutputSchema = Union[NumberSchema, StringSchema, BooleanSchema, ObjectSchema, ArraySchema]

_LEAVES: dict[str, OutputSchema] = {
    "number": NumberSchema(),
    "string": StringSchema(),
    "boolean": BooleanSchema(),
}


def sample_schema() -> ObjectSchema:
    """Default schema for new tasks: {"name": string, "value": number}."""
    return ObjectSchema(properties={"name": StringSchema(), "value": NumberSchema()})


def schema_to_wire(schema: OutputSchema) -> dict[str, Any]:
    if isinstance(schema, ObjectSchema):
        return {
            "type": "object",
            "properties": {name: schema_to_wire(child) for name, child in schema.properties.items()},
        }
    if isinstance(schema, ArraySchema):
        return {"type": "array", "items": schema_to_wire(schema.items)}
    if isinstance(schema, (NumberSchema, StringSchema, BooleanSchema)):
        return {"type": schema.type_name}
    raise SchemaError(f"Not an output schema: {schema!r}")


def schema_from_wire(data: Any) -> OutputSchema:
    if not isinstance(data, dict):
        raise SchemaError(f"Schema node must be an object, got {type(data).__name__}")

    kind = data.get("type")
    if not isinstance(kind, str):
        raise SchemaError("Schema node is missing a string 'type'")

    leaf = _LEAVES.get(kind)
    if leaf is not None:
        return leaf

    if kind == "object":
        props = data.get("properties")
        if not isinstance(props, dict):
            raise SchemaError("Object schema requires a 'properties' object")
        return ObjectSchema(
            properties={str(name): schema_from_wire(child) for name, child in props.items()}
        )

    if kind == "array":
        if "items" not in data:
            raise SchemaError("Array schema requires 'items'")
        return ArraySchema(items=schema_from_wire(data["items"]))

    raise SchemaError(f"Unknown schema type: {kind!r}")


def schema_to_json(schema: OutputSchema | None) -> str | None:
    if schema is None:
        return None
    return json.dumps(schema_to_wire(schema), ensure_ascii=False, sort_keys=True)


def schema_from_json(text: str | None) -> OutputSchema | None:
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Schema is not valid JSON: {e}") from e
    return schema_from_wire(data)
