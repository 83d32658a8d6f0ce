"""Composite validator used by the control-plane write path."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

import structlog

from gwvalidate.entity.models import KINDS, GatewayObject
from gwvalidate.observability.metrics import MetricsRegistry, record_duration
from gwvalidate.schema.registry import SchemaRegistry
from gwvalidate.validate.catalog import SchemaCatalog
from gwvalidate.validate.errors import (
    EngineError,
    GatewayValidationError,
    MissingSchemaDefinition,
)
from gwvalidate.validate.plugins import check_plugins
from gwvalidate.validate.structural import JsonSchemaValidator, ValidationResult
from gwvalidate.validate.upstream import check_semantics

LOGGER = structlog.get_logger(__name__)

FAILURE_COUNTERS = {
    "structural": "structural_failures",
    "semantic": "semantic_failures",
    "plugins": "plugin_failures",
}


def schema_path_for(kind: str) -> str:
    return f"main.{kind}"


class GatewayValidator:
    """Structural, semantic and plugin validation for one entity schema.

    Stages run in that order and the first failure is raised. All schemas
    are compiled here; ``validate`` does no I/O.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        path: str,
        *,
        catalog: Optional[SchemaCatalog] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.path = path
        self._structural = JsonSchemaValidator.from_registry(registry, path)
        self._catalog = catalog if catalog is not None else SchemaCatalog.from_registry(registry)
        self._metrics = metrics

    def _record_failure(self, stage: str, obj: object, error: GatewayValidationError) -> None:
        LOGGER.info(
            "validation_failed",
            stage=stage,
            schema=self.path,
            kind=getattr(obj, "kind", None) or type(obj).__name__,
            error=type(error).__name__,
        )
        if self._metrics is None:
            return
        self._metrics.incr("validations_failed")
        if isinstance(error, MissingSchemaDefinition):
            self._metrics.incr("missing_schema")
        elif isinstance(error, EngineError):
            self._metrics.incr("engine_errors")
        else:
            self._metrics.incr(FAILURE_COUNTERS[stage])

    def validate(self, obj: object) -> None:
        """Raise a :class:`GatewayValidationError` unless ``obj`` is valid.

        Entities that are not :class:`GatewayObject` instances only get the
        structural pass.
        """
        if self._metrics is not None:
            self._metrics.incr("validations_total")
            with record_duration(self._metrics, "validate_duration_ms"):
                self._run(obj)
            self._metrics.incr("validations_ok")
            return
        self._run(obj)

    def _run(self, obj: object) -> None:
        stage = "structural"
        try:
            self._structural.validate(obj)
            if isinstance(obj, GatewayObject):
                stage = "semantic"
                check_semantics(obj, self._catalog)
                stage = "plugins"
                check_plugins(obj.plugin_configs(), self._catalog)
        except GatewayValidationError as error:
            self._record_failure(stage, obj, error)
            raise

    def check(self, obj: object) -> ValidationResult:
        try:
            self.validate(obj)
        except GatewayValidationError as exc:
            return ValidationResult(ok=False, errors=[str(exc)])
        return ValidationResult(ok=True, errors=[])


def build_validators(
    registry: SchemaRegistry,
    kinds: Optional[Iterable[str]] = None,
    *,
    metrics: Optional[MetricsRegistry] = None,
) -> Dict[str, GatewayValidator]:
    """Create one validator per entity kind, sharing a single catalog.

    Kinds whose ``main.<kind>`` schema is missing are skipped when ``kinds``
    is not given; an explicitly requested kind must resolve.
    """
    catalog = SchemaCatalog.from_registry(registry)
    requested = list(kinds) if kinds is not None else [k for k in KINDS if registry.get(schema_path_for(k))]
    return {
        kind: GatewayValidator(registry, schema_path_for(kind), catalog=catalog, metrics=metrics)
        for kind in requested
    }
