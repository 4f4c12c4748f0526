"""Schema nodes parsed from an OpenAPI v3 document."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from .errors import UnsupportedSchemaError
from .models import EnumValue


@dataclass(frozen=True)
class ObjectNode:
    fields: Tuple[Tuple[str, "SchemaNode"], ...]
    nullable: bool = False
    description: str = ""


@dataclass(frozen=True)
class ArrayNode:
    items: "SchemaNode"
    nullable: bool = False
    description: str = ""


@dataclass(frozen=True)
class EnumNode:
    ref: Optional[str]
    values: Tuple[EnumValue, ...] = ()
    is_bitmask: bool = False
    format: str = ""
    nullable: bool = False
    description: str = ""


@dataclass(frozen=True)
class ReferenceNode:
    ref: str
    nullable: bool = False
    description: str = ""


@dataclass(frozen=True)
class ScalarNode:
    kind: str
    nullable: bool = False
    description: str = ""


@dataclass(frozen=True)
class DictionaryNode:
    key: "SchemaNode"
    value: "SchemaNode"
    nullable: bool = False
    description: str = ""


@dataclass(frozen=True)
class MappedHashNode:
    target: str
    nullable: bool = False
    description: str = ""


SchemaNode = Union[
    ObjectNode, ArrayNode, EnumNode, ReferenceNode, ScalarNode, DictionaryNode, MappedHashNode
]

SCALAR_KINDS: Dict[Tuple[str, str], str] = {
    ("string", ""): "string",
    ("string", "date-time"): "timestamp",
    ("boolean", ""): "bool",
    ("integer", "int16"): "int16",
    ("integer", "byte"): "byte",
    ("integer", "int32"): "int32",
    ("integer", "uint32"): "uint32",
    ("integer", "int64"): "int64",
    ("number", "float"): "float",
    ("number", "double"): "double",
}


def _unsupported(kind: str, raw: Any) -> UnsupportedSchemaError:
    return UnsupportedSchemaError(f"unknown {kind} {json.dumps(raw, sort_keys=True)}")


def _enum_values(raw: Dict[str, Any]) -> Tuple[EnumValue, ...]:
    values = []
    for value in raw.get("x-enum-values") or []:
        try:
            values.append(
                EnumValue(
                    identifier=value["identifier"],
                    value=int(value["numericValue"]),
                    description=value.get("description") or "",
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise _unsupported("enum value", value) from exc
    return tuple(values)


def _extension_ref(raw: Dict[str, Any], extension: str) -> Optional[str]:
    value = raw.get(extension)
    if value is None:
        return None
    if not isinstance(value, dict) or not isinstance(value.get("$ref"), str):
        raise _unsupported(extension, raw)
    return value["$ref"]


def parse_schema(raw: Any) -> SchemaNode:
    """Classify one raw schema into exactly one node variant."""
    if not isinstance(raw, dict):
        raise _unsupported("schema", raw)

    nullable = bool(raw.get("nullable", False))
    description = raw.get("description") or ""
    schema_type = raw.get("type")
    schema_format = raw.get("format") or ""

    # Siblings of a bare $ref are ignored, nullable included.
    if "$ref" in raw:
        return ReferenceNode(raw["$ref"], False, description)

    mapped = _extension_ref(raw, "x-mapped-definition")
    if mapped is not None:
        return MappedHashNode(mapped, nullable, description)

    if schema_type == "object":
        all_of = raw.get("allOf")
        if all_of:
            if len(all_of) != 1 or "$ref" not in all_of[0]:
                raise _unsupported("composed object", raw)
            return ReferenceNode(all_of[0]["$ref"], nullable, description)

        if "x-dictionary-key" in raw:
            key_raw = raw["x-dictionary-key"]
            value_raw = raw.get("additionalProperties")
            if not isinstance(key_raw, dict) or not isinstance(value_raw, dict):
                raise _unsupported("dictionary", raw)
            return DictionaryNode(
                parse_schema(key_raw), parse_schema(value_raw), nullable, description
            )

        properties = raw.get("properties") or {}
        fields = tuple(
            (name, parse_schema(properties[name])) for name in sorted(properties)
        )
        return ObjectNode(fields, nullable, description)

    if schema_type == "array":
        if "items" not in raw:
            raise _unsupported("array", raw)
        return ArrayNode(parse_schema(raw["items"]), nullable, description)

    enum_ref = _extension_ref(raw, "x-enum-reference")
    # String-typed enums travel as plain strings.
    if (enum_ref is not None or "enum" in raw) and schema_type == "integer":
        return EnumNode(
            ref=enum_ref,
            values=_enum_values(raw),
            is_bitmask=bool(raw.get("x-enum-is-bitmask", False)),
            format=schema_format,
            nullable=nullable,
            description=description,
        )

    kind = SCALAR_KINDS.get((schema_type, schema_format))
    if kind is None:
        raise _unsupported("type", raw)
    return ScalarNode(kind, nullable, description)
