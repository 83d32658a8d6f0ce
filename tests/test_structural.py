from pathlib import Path

import pytest

from gwvalidate.entity.models import Consumer
from gwvalidate.validate.errors import ConstructionError, EngineError, StructuralViolation
from gwvalidate.validate.structural import FAILED_PREFIX, JsonSchemaValidator


def _write_schema(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_schema_validation_from_file(tmp_path):
    schema = _write_schema(
        tmp_path / "event.schema.json",
        '{"type": "object", "properties": {"title": {"type": "string"}}, "required": ["title"]}',
    )
    validator = JsonSchemaValidator.from_file(schema)
    validator.validate({"title": "Sample"})
    assert validator.check({"title": "Sample"}).ok


def test_all_violations_are_joined_in_engine_order():
    validator = JsonSchemaValidator.from_schema(
        {"type": "object", "required": ["a", "b"]},
        name="pair",
    )
    with pytest.raises(StructuralViolation) as excinfo:
        validator.validate({})
    assert excinfo.value.violations == [
        "$: 'a' is a required property",
        "$: 'b' is a required property",
    ]
    assert str(excinfo.value) == "$: 'a' is a required property\n$: 'b' is a required property"


def test_duplicate_messages_are_kept():
    validator = JsonSchemaValidator.from_schema(
        {"type": "array", "items": {"type": "integer"}},
        name="ints",
    )
    result = validator.check(["x", "y"])
    assert not result.ok
    assert result.errors == [
        "$[0]: 'x' is not of type 'integer'",
        "$[1]: 'y' is not of type 'integer'",
    ]


def test_registry_validator_uses_gateway_prefix(registry):
    validator = JsonSchemaValidator.from_registry(registry, "main.consumer")
    with pytest.raises(StructuralViolation) as excinfo:
        validator.validate({"username": "bad name"})
    assert str(excinfo.value).startswith(FAILED_PREFIX)
    assert "$.username" in str(excinfo.value)


def test_models_are_dumped_before_validation(registry):
    validator = JsonSchemaValidator.from_registry(registry, "main.consumer")
    validator.validate(Consumer(username="jack", plugins={"key-auth": {"key": "k"}}))
    assert not validator.check(Consumer(desc="no username")).ok


def test_construction_failures(tmp_path, registry):
    with pytest.raises(ConstructionError):
        JsonSchemaValidator.from_file(tmp_path / "absent.json")
    with pytest.raises(ConstructionError):
        JsonSchemaValidator.from_file(_write_schema(tmp_path / "bad.json", "{oops"))
    with pytest.raises(ConstructionError):
        JsonSchemaValidator.from_schema({"type": 12}, name="bad-type")
    with pytest.raises(ConstructionError) as excinfo:
        JsonSchemaValidator.from_registry(registry, "main.nope")
    assert "main.nope" in str(excinfo.value)


def test_dangling_local_ref_fails_construction():
    with pytest.raises(ConstructionError) as excinfo:
        JsonSchemaValidator.from_schema({"$ref": "#/$defs/missing"}, name="dangling")
    assert "#/$defs/missing" in str(excinfo.value)

    with pytest.raises(ConstructionError):
        JsonSchemaValidator.from_schema(
            {"type": "object", "properties": {"port": {"$ref": "#/definitions/port"}}},
            name="nested-dangling",
        )


def test_local_refs_resolve_at_construction():
    validator = JsonSchemaValidator.from_schema(
        {
            "type": "object",
            "properties": {"port": {"$ref": "#/$defs/port"}},
            "$defs": {"port": {"type": "integer", "minimum": 1}},
        },
        name="ports",
    )
    validator.validate({"port": 80})
    assert validator.check({"port": 0}).errors == ["$.port: 0 is less than the minimum of 1"]


def test_engine_failure_is_distinct_from_violation():
    validator = JsonSchemaValidator.from_schema(
        {"$ref": "urn:gwvalidate:test:absent"},
        name="external",
    )
    with pytest.raises(EngineError):
        validator.validate({"anything": 1})
