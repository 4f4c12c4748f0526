"""One-shot generation pass: schema document to operation and type descriptors."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .closure import ClosureBuilder, check_duplicate_identifiers, register_generics
from .errors import UnsupportedSchemaError
from .models import GeneratedBindings
from .operations import OperationEmitter
from .resolver import GenerationContext, NamingRules, SchemaResolver

logger = logging.getLogger(__name__)


def load_document(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        document = json.load(handle)
    if not isinstance(document, dict):
        raise UnsupportedSchemaError(f"{path} is not an OpenAPI document")
    return document


def generate(document: Dict[str, Any], rules: Optional[NamingRules] = None) -> GeneratedBindings:
    rules = rules or NamingRules()
    schemas = (document.get("components") or {}).get("schemas") or {}

    check_duplicate_identifiers(schemas, rules)

    context = GenerationContext(rules, schemas)
    resolver = SchemaResolver(context)
    register_generics(context, resolver)

    operations = OperationEmitter(document, resolver).emit()
    types = ClosureBuilder(context, resolver).build()

    logger.info(
        "Generated %d operations and %d types from %d schemas",
        len(operations),
        len(types),
        len(schemas),
    )
    return GeneratedBindings(operations=operations, types=types, warnings=tuple(context.warnings))
