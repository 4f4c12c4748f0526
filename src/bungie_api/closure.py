"""Computes the minimal set of type declarations reachable from the operations."""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import DuplicateIdentifierError, UnresolvedReferenceError, UnsupportedSchemaError
from .models import FieldDefinition, TypeDefinition
from .resolver import (
    GenerationContext,
    GenericMember,
    NamingRules,
    SchemaResolver,
    family_base,
)
from .schema import ArrayNode, EnumNode, ObjectNode, SchemaNode

logger = logging.getLogger(__name__)

TYPE_PARAMETER = "T"

_GENERIC_HINT = re.compile(r"[a-z0-9]Of[A-Za-z]")


def check_duplicate_identifiers(schemas: Mapping[str, Any], rules: NamingRules) -> None:
    """Fail when two declared schemas normalize to one identifier.

    Runs over every declared schema, reachable or not. Members of an alias
    family may share an identifier.
    """
    found: Dict[str, str] = {}
    for name in sorted(schemas):
        identifier = rules.identifier(name)
        if rules.is_alias_family(identifier):
            continue
        if identifier in found:
            raise DuplicateIdentifierError(identifier, found[identifier], name)
        found[identifier] = name


def _follow(node: SchemaNode, path: Tuple[str, ...], name: str) -> SchemaNode:
    for step in path:
        if step == "items" and isinstance(node, ArrayNode):
            node = node.items
            continue
        fields = dict(node.fields) if isinstance(node, ObjectNode) else {}
        if step not in fields:
            raise UnsupportedSchemaError(f"result schema {name} has no {'.'.join(path)}")
        node = fields[step]
    return node


def register_generics(context: GenerationContext, resolver: SchemaResolver) -> None:
    """Record which declared schemas are instances of a generic family."""
    rules = context.rules
    names = sorted(context.schemas)
    # Fixed overrides first: pattern families may take them as parameters.
    for name in names:
        override = rules.overrides.get(rules.base_identifier(name))
        if override is not None:
            family, _, parameter = override.partition("[")
            context.members[name] = GenericMember(family, parameter[:-1])

    for name in names:
        if name in context.members:
            continue
        family = next(
            (f for f in rules.families if any(marker in name for marker in f.markers)), None
        )
        if family is not None:
            target = _follow(context.node(name), family.parameter, name)
            parameter = resolver.resolve(target, mark=False)
            context.members[name] = GenericMember(family.base, parameter)
            continue

        if _GENERIC_HINT.search(name) and not any(
            exempt in name for exempt in rules.generic_exemptions
        ):
            context.warn(f"potential unknown generic type {name}")


def substitute_parameter(type_name: str, parameter: str) -> str:
    pattern = re.compile(r"(?<![\w])" + re.escape(parameter) + r"(?![\w\[])")
    return pattern.sub(TYPE_PARAMETER, type_name)


class ClosureBuilder:
    """Drains the context's pending identifiers, emitting each type once.

    Emitting a type resolves its fields, which can queue more identifiers;
    the build ends when the queue is empty.
    """

    def __init__(self, context: GenerationContext, resolver: SchemaResolver) -> None:
        self.context = context
        self.resolver = resolver

    def _index(self) -> Dict[str, List[str]]:
        index: Dict[str, List[str]] = {}
        for name in sorted(self.context.schemas):
            index.setdefault(self.context.identifier_for(name), []).append(name)
        return index

    def build(self) -> Tuple[TypeDefinition, ...]:
        context = self.context
        index = self._index()
        emitted: Dict[str, TypeDefinition] = {}

        while context.pending:
            identifier = context.pending.popleft()
            if identifier in context.done:
                continue
            names = index.get(identifier)
            if not names:
                raise UnresolvedReferenceError(f"no schema declares {identifier}")
            context.done.add(identifier)
            for name in names:
                definition = self._emit(name)
                # Family members share one definition: the first by schema name.
                current = emitted.get(definition.identifier)
                if current is None or definition.ref < current.ref:
                    emitted[definition.identifier] = definition

        logger.debug("Closure holds %d identifiers", len(context.done))
        return tuple(sorted(emitted.values(), key=lambda definition: definition.ref))

    def _fields(self, node: ObjectNode) -> Tuple[FieldDefinition, ...]:
        fields = []
        for name, field in node.fields:
            type_name = self.resolver.resolve(field)
            fields.append(
                FieldDefinition(
                    name=name,
                    type_name=type_name,
                    nullable=type_name.startswith("Nullable["),
                    description=field.description,
                )
            )
        return tuple(fields)

    def _emit(self, name: str) -> TypeDefinition:
        context = self.context
        node = context.node(name)
        identifier = context.identifier_for(name)
        member: Optional[GenericMember] = context.members.get(name)

        if member is not None:
            if not isinstance(node, ObjectNode):
                raise UnsupportedSchemaError(f"generic schema {name} is not an object")
            fields = tuple(
                dataclasses.replace(
                    field, type_name=substitute_parameter(field.type_name, member.parameter)
                )
                for field in self._fields(node)
            )
            return TypeDefinition(
                identifier=family_base(identifier),
                ref=name,
                kind="generic",
                description=node.description,
                fields=fields,
            )

        if isinstance(node, ObjectNode):
            if not node.fields:
                return TypeDefinition(identifier, name, "map", node.description)
            return TypeDefinition(
                identifier=identifier,
                ref=name,
                kind="object",
                description=node.description,
                fields=self._fields(node),
                definition_table=context.rules.definition_table(name),
            )

        if isinstance(node, EnumNode) and node.ref is None:
            return TypeDefinition(
                identifier=identifier,
                ref=name,
                kind="enum",
                description=node.description,
                values=node.values,
                is_bitmask=node.is_bitmask,
                target=self.resolver.enum_base(node),
            )

        if isinstance(node, ArrayNode):
            return TypeDefinition(
                identifier=identifier,
                ref=name,
                kind="alias",
                description=node.description,
                target=self.resolver.resolve(node),
            )

        raise UnsupportedSchemaError(f"unknown schema type {name}")
