"""JSON Schema validation against a schema compiled once."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List

import jsonschema
import orjson
import structlog
from jsonschema.exceptions import SchemaError, UnknownType
from pydantic import BaseModel
from pydantic_core import PydanticSerializationError
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT202012

from gwvalidate.schema.registry import SchemaRegistry
from gwvalidate.validate.errors import (
    ConstructionError,
    EngineError,
    GatewayValidationError,
    StructuralViolation,
)

LOGGER = structlog.get_logger(__name__)

FAILED_PREFIX = "schema validate failed: "

_LOCAL_BASE_URI = "urn:gwvalidate:schema"
# instance data, not subschemas
_DATA_KEYWORDS = frozenset({"enum", "const", "default", "examples"})


@dataclass
class ValidationResult:
    """Outcome of validating a single object."""

    ok: bool
    errors: List[str]


def to_instance(obj: Any) -> Any:
    """Convert entity models to the plain JSON form the engine understands."""
    try:
        if hasattr(obj, "to_document"):
            return obj.to_document()
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json", exclude_none=True)
    except PydanticSerializationError as exc:
        raise EngineError(f"{FAILED_PREFIX}{exc}") from exc
    return obj


def _local_refs(node: Any, *, root: bool = True) -> Iterator[str]:
    if isinstance(node, dict):
        if not root and "$id" in node:
            return
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#"):
            yield ref
        for key, value in node.items():
            if key not in _DATA_KEYWORDS:
                yield from _local_refs(value, root=False)
    elif isinstance(node, list):
        for item in node:
            yield from _local_refs(item, root=False)


def check_local_refs(schema: Any, *, name: str) -> None:
    """Resolve every same-document ``$ref`` so dangling ones fail construction.

    References to other documents are left to evaluation time.
    """
    if not isinstance(schema, dict):
        return
    resource = Resource.from_contents(schema, default_specification=DRAFT202012)
    resolver = Registry().with_resource(_LOCAL_BASE_URI, resource).resolver(base_uri=_LOCAL_BASE_URI)
    for ref in _local_refs(schema):
        try:
            resolver.lookup(ref)
        except Unresolvable as exc:
            raise ConstructionError(f"new schema failed: {name}: unresolvable $ref {ref}") from exc


def compile_schema(text: str, *, name: str) -> jsonschema.protocols.Validator:
    """Parse and check schema text, returning a reusable engine validator."""
    try:
        schema = orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise ConstructionError(f"new schema failed: {name}: {exc}") from exc
    if not isinstance(schema, (dict, bool)):
        raise ConstructionError(f"new schema failed: {name}: schema must be an object or boolean")
    validator_cls = jsonschema.validators.validator_for(schema, default=jsonschema.Draft202012Validator)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as exc:
        raise ConstructionError(f"new schema failed: {name}: {exc.message}") from exc
    check_local_refs(schema, name=name)
    return validator_cls(schema)


def format_violation(error: jsonschema.ValidationError) -> str:
    return f"{error.json_path}: {error.message}"


class JsonSchemaValidator:
    """Validates arbitrary objects against one compiled schema.

    Instances hold no mutable state after construction and may be shared
    across threads.
    """

    def __init__(self, text: str, *, name: str, prefix: str = "") -> None:
        self._engine = compile_schema(text, name=name)
        self.name = name
        self.prefix = prefix
        LOGGER.debug("schema_compiled", schema=name)

    @classmethod
    def from_file(cls, path: Path) -> "JsonSchemaValidator":
        """Build a generic validator from a standalone schema document."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConstructionError(f"read schema file failed: {path}: {exc}") from exc
        return cls(text, name=str(path))

    @classmethod
    def from_registry(cls, registry: SchemaRegistry, path: str) -> "JsonSchemaValidator":
        """Build a gateway validator for a schema resolved by name."""
        text = registry.get(path)
        if not text:
            raise ConstructionError(f"{FAILED_PREFIX}schema not found, path: {path}")
        return cls(text, name=path, prefix=FAILED_PREFIX)

    @classmethod
    def from_schema(cls, schema: Dict[str, Any], *, name: str, prefix: str = "") -> "JsonSchemaValidator":
        return cls(orjson.dumps(schema).decode("utf-8"), name=name, prefix=prefix)

    def violations(self, obj: Any) -> List[str]:
        """Return every violation in the order the engine reports them."""
        instance = to_instance(obj)
        try:
            return [format_violation(error) for error in self._engine.iter_errors(instance)]
        except (Unresolvable, UnknownType, re.error, TypeError) as exc:
            raise EngineError(f"validate failed: {self.name}: {exc}") from exc

    def validate(self, obj: Any) -> None:
        """Raise :class:`StructuralViolation` when ``obj`` does not conform."""
        errors = self.violations(obj)
        if errors:
            raise StructuralViolation(self.prefix + "\n".join(errors), errors)

    def check(self, obj: Any) -> ValidationResult:
        """Non-raising variant of :meth:`validate`."""
        try:
            self.validate(obj)
        except StructuralViolation as exc:
            return ValidationResult(ok=False, errors=exc.violations)
        except GatewayValidationError as exc:
            return ValidationResult(ok=False, errors=[str(exc)])
        return ValidationResult(ok=True, errors=[])
