"""Renders generated descriptors into a Python bindings module."""

from __future__ import annotations

import keyword
import re
import textwrap
from typing import Dict, List

from .models import (
    FieldDefinition,
    GeneratedBindings,
    OperationDescriptor,
    ParameterDescriptor,
    TypeDefinition,
)

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NON_WORD = re.compile(r"[^0-9a-zA-Z_]+")

HEADER = '''\
"""Generated platform API bindings. Do not edit."""

from __future__ import annotations

from enum import IntFlag
from typing import Any, ClassVar, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from bungie_api.api import BaseAPI
from bungie_api.client import ClientRequest
from bungie_api.envelope import ServerResponse
from bungie_api.values import (
    FlagSet,
    HashRef,
    Int64,
    Nullable,
    PlatformEnum,
    Timestamp,
    format_param,
    join_array,
)

T = TypeVar("T")
'''

MODEL_CONFIG = 'model_config = ConfigDict(populate_by_name=True, protected_namespaces=())'


def snake_case(name: str) -> str:
    name = _WORD_BOUNDARY.sub("_", name)
    return _NON_WORD.sub("_", name).strip("_").lower()


def python_name(wire_name: str) -> str:
    name = snake_case(wire_name) or "value"
    if name[0].isdigit():
        name = f"f_{name}"
    if keyword.iskeyword(name):
        name += "_"
    return name


def member_name(identifier: str) -> str:
    name = snake_case(identifier).upper() or "VALUE"
    if name[0].isdigit():
        name = f"VALUE_{name}"
    return name


class _Writer:
    def __init__(self) -> None:
        self._lines: List[str] = []

    def out(self, line: str = "", indent: int = 0) -> None:
        self._lines.append("    " * indent + line if line else "")

    def docstring(self, text: str, indent: int) -> None:
        text = text.strip().replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
        if not text:
            return
        lines: List[str] = []
        for paragraph in text.splitlines():
            lines.extend(textwrap.wrap(paragraph, width=88) or [""])
        if len(lines) == 1 and not lines[0].endswith('"'):
            self.out(f'"""{lines[0]}"""', indent)
            return
        self.out(f'"""{lines[0]}', indent)
        for line in lines[1:]:
            self.out(line, indent)
        self.out('"""', indent)

    def text(self) -> str:
        return "\n".join(self._lines) + "\n"


def _field_line(field: FieldDefinition) -> str:
    options = [f"alias={field.name!r}"]
    if field.description:
        options.append(f"description={field.description!r}")
    if field.type_name.startswith("Nullable["):
        annotation = field.type_name
        options.insert(0, "default_factory=Nullable")
    else:
        annotation = f"Optional[{field.type_name}]"
        options.insert(0, "default=None")
    return f"{python_name(field.name)}: {annotation} = Field({', '.join(options)})"


def _parameter_line(parameter: ParameterDescriptor) -> str:
    options = [f"alias={parameter.name!r}"]
    if parameter.description:
        options.append(f"description={parameter.description!r}")
    annotation = parameter.type_name
    if not parameter.required:
        annotation = f"Optional[{annotation}]"
        options.insert(0, "default=None")
    return f"{python_name(parameter.name)}: {annotation} = Field({', '.join(options)})"


def _render_model(w: _Writer, definition: TypeDefinition) -> None:
    bases = "BaseModel, Generic[T]" if definition.kind == "generic" else "BaseModel"
    w.out(f"class {definition.identifier}({bases}):")
    w.docstring(definition.description or definition.ref, 1)
    w.out()
    w.out(MODEL_CONFIG, 1)
    if definition.definition_table:
        w.out(f"__definition_table__: ClassVar[str] = {definition.definition_table!r}", 1)
    w.out()
    for field in definition.fields:
        w.out(_field_line(field), 1)


def _render_enum(w: _Writer, definition: TypeDefinition) -> None:
    base = "IntFlag" if definition.is_bitmask else "PlatformEnum"
    w.out(f"class {definition.identifier}({base}):")
    w.docstring(definition.description or definition.ref, 1)
    w.out()
    seen: Dict[str, int] = {}
    for value in definition.values:
        name = member_name(value.identifier)
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        w.out(f"{name} = {value.value}", 1)
    if not definition.values:
        w.out("pass", 1)


def _request_name(operation: OperationDescriptor) -> str:
    return f"{operation.name}Request"


def _has_required(operation: OperationDescriptor) -> bool:
    parameters = operation.path_params + operation.query_params
    return operation.body_required or any(p.required for p in parameters)


def _render_request(w: _Writer, operation: OperationDescriptor) -> None:
    w.out(f"class {_request_name(operation)}(BaseModel):")
    w.docstring(f"Request parameters for operation {operation.operation_id}.", 1)
    w.out()
    w.out(MODEL_CONFIG, 1)
    w.out()
    for parameter in operation.path_params + operation.query_params:
        w.out(_parameter_line(parameter), 1)
    if operation.body_type is not None:
        if operation.body_required:
            w.out(f"body: {operation.body_type}", 1)
        else:
            w.out(f"body: Optional[{operation.body_type}] = None", 1)


def _param_value(parameter: ParameterDescriptor) -> str:
    helper = "join_array" if parameter.is_array else "format_param"
    return f"{helper}(request.{python_name(parameter.name)})"


def _operation_doc(operation: OperationDescriptor) -> str:
    parts = [operation.description or operation.name, f"URL: {operation.path}"]
    parts.append(f"Operation: {operation.operation_id}")
    if operation.deprecated:
        parts.append("Deprecated.")
    for scope in operation.scopes:
        parts.append(f"Scope: {scope}")
    return "\n\n".join(parts)


def _render_operation(w: _Writer, operation: OperationDescriptor) -> None:
    request = _request_name(operation)
    envelope = f"ServerResponse[{operation.response_type}]"
    if _has_required(operation):
        signature = f"request: {request}"
    else:
        signature = f"request: Optional[{request}] = None"
    w.out(f"async def {python_name(operation.name)}(self, {signature}) -> {envelope}:", 1)
    w.docstring(_operation_doc(operation), 2)
    if not _has_required(operation):
        w.out(f"request = request or {request}()", 2)
    w.out("return await self._call(", 2)
    w.out("ClientRequest(", 3)
    w.out(f"operation={operation.operation_id!r},", 4)
    w.out(f"method={operation.method!r},", 4)
    w.out(f"path_spec={operation.path!r},", 4)
    for attr, parameters in (
        ("path_params", operation.path_params),
        ("query_params", operation.query_params),
    ):
        if not parameters:
            continue
        w.out(f"{attr}={{", 4)
        for parameter in parameters:
            w.out(f"{parameter.name!r}: {_param_value(parameter)},", 5)
        w.out("},", 4)
    if operation.body_type is not None:
        w.out("body=request.body,", 4)
    w.out("),", 3)
    w.out(f"{envelope},", 3)
    w.out(")", 2)


def render_module(bindings: GeneratedBindings) -> str:
    w = _Writer()
    for line in HEADER.splitlines():
        w.out(line)

    aliases: List[TypeDefinition] = []
    models: List[str] = []
    for definition in bindings.types:
        if definition.kind in ("alias", "map"):
            aliases.append(definition)
            continue
        w.out()
        w.out()
        if definition.kind == "enum":
            _render_enum(w, definition)
        else:
            _render_model(w, definition)
            models.append(definition.identifier)

    for operation in bindings.operations:
        w.out()
        w.out()
        _render_request(w, operation)
        models.append(_request_name(operation))

    w.out()
    w.out()
    w.out("class API(BaseAPI):")
    w.docstring(f"{len(bindings.operations)} platform operations.", 1)
    for operation in bindings.operations:
        w.out()
        _render_operation(w, operation)

    if aliases:
        w.out()
    for definition in aliases:
        w.out()
        target = definition.target if definition.kind == "alias" else "dict[str, Any]"
        w.out(f"{definition.identifier} = {target}")

    w.out()
    w.out()
    w.out("for _model in (")
    for name in models:
        w.out(f"{name},", 1)
    w.out("):")
    w.out("_model.model_rebuild()", 1)
    return w.text()
