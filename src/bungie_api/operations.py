"""Builds operation descriptors from the document's paths."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from .errors import UnresolvedReferenceError, UnsupportedOperationError, UnsupportedSchemaError
from .models import OperationDescriptor, ParameterDescriptor
from .resolver import SchemaResolver, schema_name
from .schema import ArrayNode, parse_schema

logger = logging.getLogger(__name__)

JSON_CONTENT = "application/json"


class OperationEmitter:
    def __init__(self, document: Dict[str, Any], resolver: SchemaResolver) -> None:
        self.document = document
        self.resolver = resolver
        self.components = document.get("components") or {}

    def emit(self) -> Tuple[OperationDescriptor, ...]:
        paths = self.document.get("paths") or {}
        return tuple(self._emit(path, paths[path] or {}) for path in sorted(paths))

    def _component(self, kind: str, ref: str) -> Dict[str, Any]:
        name = ref.rsplit("/", 1)[-1]
        found = (self.components.get(kind) or {}).get(name)
        if found is None:
            raise UnresolvedReferenceError(f"couldn't find ref {ref}")
        return found

    def _emit(self, path: str, item: Dict[str, Any]) -> OperationDescriptor:
        if item.get("get"):
            method, operation = "GET", item["get"]
        elif item.get("post"):
            method, operation = "POST", item["post"]
        else:
            raise UnsupportedOperationError(f"unhandled operation {path}")

        name = (item.get("summary") or operation.get("operationId") or "").replace(".", "")
        if not name.isidentifier():
            raise UnsupportedOperationError(f"cannot name operation {path}")

        path_params: List[ParameterDescriptor] = []
        query_params: List[ParameterDescriptor] = []
        for raw in [*(item.get("parameters") or []), *(operation.get("parameters") or [])]:
            parameter = self._parameter(raw)
            if parameter.location == "path":
                path_params.append(parameter)
            else:
                query_params.append(parameter)

        body_type, body_required = self._body(operation)
        descriptor = OperationDescriptor(
            name=name,
            operation_id=operation.get("operationId") or name,
            method=method,
            path=path,
            path_params=tuple(path_params),
            query_params=tuple(query_params),
            body_type=body_type,
            body_required=body_required,
            response_type=self._response(path, operation),
            description=item.get("description") or operation.get("description") or "",
            deprecated=bool(operation.get("deprecated", False)),
            scopes=self._scopes(operation),
        )
        logger.debug("Operation %s %s -> %s", method, path, descriptor.response_type)
        return descriptor

    def _parameter(self, raw: Dict[str, Any]) -> ParameterDescriptor:
        if "$ref" in raw:
            raw = self._component("parameters", raw["$ref"])
        location = raw.get("in")
        if location not in ("path", "query"):
            raise UnsupportedOperationError(f"unknown param type {raw.get('name')} in {location}")
        node = parse_schema(raw.get("schema"))
        return ParameterDescriptor(
            name=raw["name"],
            location=location,
            type_name=self.resolver.resolve(node),
            required=bool(raw.get("required", False)) or location == "path",
            is_array=isinstance(node, ArrayNode),
            description=raw.get("description") or "",
        )

    def _json_schema(self, content: Dict[str, Any], where: str) -> Dict[str, Any]:
        media = (content or {}).get(JSON_CONTENT)
        if not media or "schema" not in media:
            raise UnsupportedSchemaError(f"{where} has no {JSON_CONTENT} schema")
        return media["schema"]

    def _body(self, operation: Dict[str, Any]) -> Tuple[Optional[str], bool]:
        body = operation.get("requestBody")
        if not body:
            return None, False
        if "$ref" in body:
            body = self._component("requestBodies", body["$ref"])
        node = parse_schema(self._json_schema(body.get("content"), "request body"))
        return self.resolver.resolve(node), bool(body.get("required", False))

    def _response(self, path: str, operation: Dict[str, Any]) -> str:
        response = (operation.get("responses") or {}).get("200")
        if response is None:
            raise UnsupportedOperationError(f"operation {path} has no 200 response")
        if "$ref" in response:
            response = self._component("responses", response["$ref"])
        envelope = self._json_schema(response.get("content"), f"response of {path}")
        if "$ref" in envelope:
            envelope = (self.components.get("schemas") or {}).get(schema_name(envelope["$ref"]))
            if envelope is None:
                raise UnresolvedReferenceError(f"couldn't find envelope of {path}")
        payload = (envelope.get("properties") or {}).get("Response")
        if payload is None:
            raise UnsupportedSchemaError(f"response of {path} has no Response property")
        return self.resolver.resolve(parse_schema(payload))

    def _scopes(self, operation: Dict[str, Any]) -> Tuple[str, ...]:
        scopes: List[str] = []
        for requirement in operation.get("security") or []:
            for scheme, names in requirement.items():
                scopes.append(f"{scheme}: {' '.join(names)}".rstrip(": "))
        return tuple(scopes)
