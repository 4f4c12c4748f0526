"""Maps schema nodes to Python type expressions for the generated bindings."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, FrozenSet, List, Mapping, Set, Tuple

from .errors import UnresolvedReferenceError, UnsupportedSchemaError
from .schema import (
    ArrayNode,
    DictionaryNode,
    EnumNode,
    MappedHashNode,
    ObjectNode,
    ReferenceNode,
    ScalarNode,
    SchemaNode,
    parse_schema,
)

logger = logging.getLogger(__name__)

SCHEMA_PREFIX = "#/components/schemas/"

SCALAR_TYPES: Dict[str, str] = {
    "string": "str",
    "timestamp": "Timestamp",
    "bool": "bool",
    "int16": "int",
    "byte": "int",
    "int32": "int",
    "uint32": "int",
    "int64": "Int64",
    "float": "float",
    "double": "float",
}

OPEN_MAP = "dict[str, Any]"

DEFAULT_OVERRIDES: Dict[str, str] = {
    "BaseItemComponentSetOfint32": "BaseItemComponentSet[int]",
    "BaseItemComponentSetOfint64": "BaseItemComponentSet[Int64]",
    "BaseItemComponentSetOfuint32": "BaseItemComponentSet[int]",
    "ItemComponentSetOfint32": "ItemComponentSet[int]",
    "ItemComponentSetOfint64": "ItemComponentSet[Int64]",
    "ItemComponentSetOfuint32": "ItemComponentSet[int]",
    "VendorItemComponentSetOfint32": "ItemComponentSet[int]",
    "VendorSaleItemSetComponentOfDestinyPublicVendorSaleItemComponent": (
        "VendorSaleItemSetComponent[PublicVendorSaleItemComponent]"
    ),
    "VendorSaleItemSetComponentOfDestinyVendorSaleItemComponent": (
        "VendorSaleItemSetComponent[VendorSaleItemComponent]"
    ),
}

# Dictionary keys declared with these enums arrive as strings upstream:
# Bungie-net/api issues 1575, 1888 and 1374.
DEFAULT_STRING_KEY_ENUMS: FrozenSet[str] = frozenset(
    {
        "Destiny.DestinyGender",
        "BungieCredentialType",
        "BungieMembershipType",
    }
)


@dataclass(frozen=True)
class GenericFamily:
    """Schemas whose name contains one of ``markers`` become ``base[T]``.

    ``parameter`` is the field path (``items`` steps into an array) whose
    resolved type is the type argument.
    """

    base: str
    markers: Tuple[str, ...]
    parameter: Tuple[str, ...]


DEFAULT_FAMILIES: Tuple[GenericFamily, ...] = (
    GenericFamily("SearchResult", ("SearchResultOf",), ("results", "items")),
    GenericFamily(
        "ComponentResponse",
        ("SingleComponentResponseOf", "DictionaryComponentResponseOf"),
        ("data",),
    ),
)


@dataclass(frozen=True)
class NamingRules:
    strip_prefixes: Tuple[str, ...] = ("Destiny2", "Destiny")
    strip_suffixes: Tuple[str, ...] = ("Enum", "Enums")
    body_suffix: Tuple[str, str] = ("Request", "Body")
    overrides: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_OVERRIDES))
    alias_families: FrozenSet[str] = frozenset({"ItemComponentSet", "BaseItemComponentSet"})
    string_key_enums: FrozenSet[str] = DEFAULT_STRING_KEY_ENUMS
    families: Tuple[GenericFamily, ...] = DEFAULT_FAMILIES
    generic_exemptions: Tuple[str, ...] = ("Tokens.", "DestinyReportOffensePgcrRequest")
    definition_namespace: str = "Destiny.Definitions."

    def base_identifier(self, name: str) -> str:
        name = schema_name(name)
        ident = name.rsplit(".", 1)[-1]
        for prefix in self.strip_prefixes:
            if ident.startswith(prefix):
                ident = ident[len(prefix):]
        for suffix in self.strip_suffixes:
            if ident.endswith(suffix):
                ident = ident[: -len(suffix)]
        if ident.endswith(self.body_suffix[0]):
            ident += self.body_suffix[1]
        if not ident.isidentifier():
            raise UnsupportedSchemaError(f"cannot derive an identifier from {name!r}")
        return ident

    def identifier(self, name: str) -> str:
        base = self.base_identifier(name)
        return self.overrides.get(base, base)

    def is_alias_family(self, identifier: str) -> bool:
        return family_base(identifier) in self.alias_families

    def definition_table(self, name: str) -> str | None:
        name = schema_name(name)
        if not name.startswith(self.definition_namespace):
            return None
        return name.rsplit(".", 1)[-1]


def schema_name(ref: str) -> str:
    if ref.startswith(SCHEMA_PREFIX):
        return ref[len(SCHEMA_PREFIX):]
    return ref


def family_base(identifier: str) -> str:
    return identifier.split("[", 1)[0]


@dataclass(frozen=True)
class GenericMember:
    base: str
    parameter: str

    @property
    def identifier(self) -> str:
        return f"{self.base}[{self.parameter}]"


class GenerationContext:
    """State owned by a single generator run.

    ``wanted`` holds every identifier the output needs, ``pending`` the ones
    not yet emitted in discovery order, ``done`` the ones already emitted.
    """

    def __init__(self, rules: NamingRules, schemas: Mapping[str, Any]) -> None:
        self.rules = rules
        self.schemas = schemas
        self.wanted: Set[str] = set()
        self.pending: Deque[str] = deque()
        self.done: Set[str] = set()
        self.members: Dict[str, GenericMember] = {}
        self.warnings: List[str] = []
        self._nodes: Dict[str, SchemaNode] = {}

    def node(self, ref: str) -> SchemaNode:
        name = schema_name(ref)
        if name not in self._nodes:
            if name not in self.schemas:
                raise UnresolvedReferenceError(f"couldn't find ref {ref}")
            self._nodes[name] = parse_schema(self.schemas[name])
        return self._nodes[name]

    def identifier_for(self, ref: str) -> str:
        name = schema_name(ref)
        if name not in self.schemas:
            raise UnresolvedReferenceError(f"couldn't find ref {ref}")
        member = self.members.get(name)
        if member is not None:
            return member.identifier
        return self.rules.identifier(name)

    def want(self, identifier: str) -> None:
        if identifier in self.wanted:
            return
        self.wanted.add(identifier)
        self.pending.append(identifier)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


class SchemaResolver:
    def __init__(self, context: GenerationContext) -> None:
        self.context = context

    def resolve(self, node: SchemaNode, mark: bool = True) -> str:
        """Return the type expression for ``node``.

        With ``mark`` set, every schema identifier the expression depends on
        is recorded as wanted.
        """
        if isinstance(node, MappedHashNode):
            type_name = f"HashRef[{self._reference(node.target, mark)}]"
        elif isinstance(node, ReferenceNode):
            type_name = self._reference(node.ref, mark)
        else:
            type_name = self._resolve_value(node, mark)
        if node.nullable:
            return f"Nullable[{type_name}]"
        return type_name

    def _reference(self, ref: str, mark: bool) -> str:
        identifier = self.context.identifier_for(ref)
        if mark:
            self.context.want(identifier)
        return identifier

    def _resolve_value(self, node: SchemaNode, mark: bool) -> str:
        if isinstance(node, DictionaryNode):
            key = self._key_type(node.key, mark)
            value = self.resolve(node.value, mark)
            return f"dict[{key}, {value}]"
        if isinstance(node, ObjectNode):
            if node.fields:
                names = ", ".join(name for name, _ in node.fields)
                raise UnsupportedSchemaError(f"inline object with fields ({names})")
            return OPEN_MAP
        if isinstance(node, ArrayNode):
            return f"list[{self.resolve(node.items, mark)}]"
        if isinstance(node, EnumNode):
            if node.ref is None:
                return self.enum_base(node)
            identifier = self._reference(node.ref, mark)
            if node.is_bitmask:
                return f"FlagSet[{identifier}]"
            return identifier
        if isinstance(node, ScalarNode):
            return SCALAR_TYPES[node.kind]
        raise UnsupportedSchemaError(f"unknown type {node!r}")

    def _key_type(self, key: SchemaNode, mark: bool) -> str:
        if isinstance(key, EnumNode) and key.ref is not None:
            if schema_name(key.ref) in self.context.rules.string_key_enums:
                return "str"
        return self.resolve(key, mark)

    def enum_base(self, node: EnumNode) -> str:
        return "Int64" if node.format == "int64" else "int"
