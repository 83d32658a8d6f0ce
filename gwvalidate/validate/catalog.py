"""Sub-schemas compiled once and shared by gateway validators."""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Mapping

import structlog

from gwvalidate.schema.registry import SchemaRegistry
from gwvalidate.validate.errors import MissingSchemaDefinition
from gwvalidate.validate.structural import FAILED_PREFIX, JsonSchemaValidator

LOGGER = structlog.get_logger(__name__)

HASH_VARS_SCHEMA = "main.upstream_hash_vars_schema"
HASH_HEADER_SCHEMA = "main.upstream_hash_header_schema"
PLUGINS_SECTION = "plugins"


def plugin_schema_path(plugin_name: str) -> str:
    return f"{PLUGINS_SECTION}.{plugin_name}"


class SchemaCatalog:
    """Read-only set of compiled hash-key and plugin schemas.

    Every schema present in the registry is compiled when the catalog is
    built; a malformed one fails construction. Paths that are absent are
    only reported when a validation actually needs them.
    """

    def __init__(self, validators: Mapping[str, JsonSchemaValidator]) -> None:
        self._validators = MappingProxyType(dict(validators))

    @classmethod
    def from_registry(cls, registry: SchemaRegistry) -> "SchemaCatalog":
        paths: List[str] = [HASH_VARS_SCHEMA, HASH_HEADER_SCHEMA]
        paths.extend(plugin_schema_path(name) for name in registry.names(PLUGINS_SECTION))
        validators: Dict[str, JsonSchemaValidator] = {}
        for path in paths:
            text = registry.get(path)
            if not text:
                LOGGER.debug("schema_absent", schema=path)
                continue
            validators[path] = JsonSchemaValidator(text, name=path, prefix=FAILED_PREFIX)
        LOGGER.debug("catalog_built", schemas=len(validators))
        return cls(validators)

    def require(self, path: str) -> JsonSchemaValidator:
        """Return the validator for ``path`` or raise MissingSchemaDefinition."""
        try:
            return self._validators[path]
        except KeyError:
            raise MissingSchemaDefinition(path) from None
