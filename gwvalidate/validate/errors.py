"""Error taxonomy for gateway configuration validation."""
from __future__ import annotations

from typing import List


class GatewayValidationError(Exception):
    """Base class for every failure raised by the validators."""


class ConstructionError(GatewayValidationError):
    """A schema could not be read, parsed, resolved or compiled."""


class EngineError(GatewayValidationError):
    """The schema engine itself failed while evaluating an object."""


class StructuralViolation(GatewayValidationError):
    """The object does not conform to its compiled schema."""

    def __init__(self, message: str, violations: List[str]) -> None:
        super().__init__(message)
        self.violations = list(violations)


class SemanticViolation(GatewayValidationError):
    """A gateway rule that JSON-Schema cannot express has failed."""

    def __init__(self, rule: str, message: str) -> None:
        super().__init__(message)
        self.rule = rule


class MissingSchemaDefinition(GatewayValidationError):
    """A referenced schema path resolves to nothing in the registry."""

    def __init__(self, path: str) -> None:
        super().__init__(f"schema validate failed: schema not found, path: {path}")
        self.path = path
