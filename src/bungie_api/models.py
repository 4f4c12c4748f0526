"""Descriptors produced by the generator and the manifest wire model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    location: str
    type_name: str
    required: bool
    is_array: bool
    description: str = ""


@dataclass(frozen=True)
class OperationDescriptor:
    name: str
    operation_id: str
    method: str
    path: str
    path_params: Tuple[ParameterDescriptor, ...]
    query_params: Tuple[ParameterDescriptor, ...]
    body_type: Optional[str]
    body_required: bool
    response_type: str
    description: str = ""
    deprecated: bool = False
    scopes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    type_name: str
    nullable: bool
    description: str = ""


@dataclass(frozen=True)
class EnumValue:
    identifier: str
    value: int
    description: str = ""


@dataclass(frozen=True)
class TypeDefinition:
    """One emitted type declaration.

    ``kind`` is ``object`` (record with fields), ``map`` (open string-keyed
    map), ``enum``, ``alias`` (``target`` names the aliased type) or
    ``generic`` (record parametrized by ``T``).
    """

    identifier: str
    ref: str
    kind: str
    description: str = ""
    fields: Tuple[FieldDefinition, ...] = ()
    values: Tuple[EnumValue, ...] = ()
    is_bitmask: bool = False
    target: Optional[str] = None
    definition_table: Optional[str] = None


@dataclass(frozen=True)
class GeneratedBindings:
    operations: Tuple[OperationDescriptor, ...]
    types: Tuple[TypeDefinition, ...]
    warnings: Tuple[str, ...] = field(default=())

    def type_identifiers(self) -> List[str]:
        return [definition.identifier for definition in self.types]


class Manifest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: str = Field(default="")
    json_world_component_content_paths: Dict[str, Dict[str, str]] = Field(
        default_factory=dict, alias="jsonWorldComponentContentPaths"
    )

    def content_path(self, locale: str, table: str) -> Optional[str]:
        return self.json_world_component_content_paths.get(locale, {}).get(table)
