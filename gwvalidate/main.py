"""Command-line entrypoints for validating gateway configuration objects."""
from __future__ import annotations

import argparse
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
import tomllib
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from gwvalidate.entity.models import KINDS, GatewayObject, parse_object
from gwvalidate.observability.log import configure_logging
from gwvalidate.observability.metrics import MetricsRegistry
from gwvalidate.schema.registry import SchemaRegistry
from gwvalidate.validate.catalog import HASH_HEADER_SCHEMA, HASH_VARS_SCHEMA, PLUGINS_SECTION
from gwvalidate.validate.errors import ConstructionError
from gwvalidate.validate.gateway import GatewayValidator, schema_path_for
from gwvalidate.validate.structural import JsonSchemaValidator, ValidationResult

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
SCHEMA_PATH_ENV = "GWVALIDATE_SCHEMA_PATH"

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "schema": {"path": "config/schema.json"},
    "logging": {"config": "config/logging.yaml"},
}


def load_settings(path: Path) -> Dict[str, Any]:
    """Read the TOML configuration file, falling back to built-in defaults."""
    settings = {section: dict(values) for section, values in DEFAULT_SETTINGS.items()}
    if not path.exists():
        return settings
    with path.open("rb") as handle:
        loaded = tomllib.load(handle)
    for section, values in loaded.items():
        settings.setdefault(section, {}).update(values)
    return settings


def resolve_schema_path(args: argparse.Namespace, settings: Dict[str, Any]) -> Path:
    if getattr(args, "schema", None):
        return Path(args.schema)
    return Path(os.environ.get(SCHEMA_PATH_ENV) or settings["schema"]["path"])


def load_document(path: Path) -> Any:
    """Load a JSON or YAML object file."""
    if path.suffix in {".yaml", ".yml"}:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    return orjson.loads(path.read_bytes())


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="gw-validate", description="Gateway configuration validator")
    parser.add_argument("--settings", default=str(DEFAULT_SETTINGS_PATH), help="Path to settings TOML")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate entity files against the gateway schemas")
    validate.add_argument("--kind", required=True, choices=sorted(KINDS), help="Entity kind of every file")
    validate.add_argument("--schema", help="Schema document overriding settings and environment")
    validate.add_argument("--metrics-out", help="Write validation counters to this JSON file")
    validate.add_argument("files", nargs="+", help="JSON or YAML entity files")

    check = sub.add_parser("check", help="Validate files against a standalone JSON Schema")
    check.add_argument("--schema-file", required=True, help="Path to a JSON Schema document")
    check.add_argument("files", nargs="+", help="JSON or YAML files")

    explain = sub.add_parser("explain", help="Show which schemas apply to an entity kind")
    explain.add_argument("--kind", required=True, choices=sorted(KINDS))
    explain.add_argument("--schema", help="Schema document overriding settings and environment")

    return parser


def _report_row(path: str, kind: str, result: ValidationResult) -> Dict[str, str]:
    return {
        "file": path,
        "kind": kind,
        "status": "OK" if result.ok else "FAIL",
        "detail": "\n".join(result.errors),
    }


def cmd_validate(args: argparse.Namespace, settings: Dict[str, Any]) -> bool:
    metrics = MetricsRegistry()
    try:
        registry = SchemaRegistry.from_file(resolve_schema_path(args, settings))
        validator = GatewayValidator(registry, schema_path_for(args.kind), metrics=metrics)
    except ConstructionError as exc:
        raise SystemExit(f"Failed to load schemas: {exc}")

    report: List[Dict[str, str]] = []
    for name in args.files:
        try:
            payload = load_document(Path(name))
            obj = parse_object(args.kind, payload)
        except (OSError, orjson.JSONDecodeError, yaml.YAMLError, ValidationError, ValueError) as exc:
            report.append(_report_row(name, args.kind, ValidationResult(ok=False, errors=[str(exc)])))
            continue
        report.append(_report_row(name, args.kind, validator.check(obj)))
    print(json.dumps(report, indent=2))

    if args.metrics_out:
        metrics.export(path=Path(args.metrics_out), run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S"))
    return all(row["status"] == "OK" for row in report)


def cmd_check(args: argparse.Namespace) -> bool:
    try:
        validator = JsonSchemaValidator.from_file(Path(args.schema_file))
    except ConstructionError as exc:
        raise SystemExit(f"Failed to load schema: {exc}")

    report: List[Dict[str, str]] = []
    for name in args.files:
        try:
            result = validator.check(load_document(Path(name)))
        except (OSError, orjson.JSONDecodeError, yaml.YAMLError) as exc:
            result = ValidationResult(ok=False, errors=[str(exc)])
        report.append(_report_row(name, "", result))
    print(json.dumps(report, indent=2))
    return all(row["status"] == "OK" for row in report)


def cmd_explain(args: argparse.Namespace, settings: Dict[str, Any]) -> None:
    try:
        registry = SchemaRegistry.from_file(resolve_schema_path(args, settings))
    except ConstructionError as exc:
        raise SystemExit(f"Failed to load schemas: {exc}")
    path = schema_path_for(args.kind)
    model = KINDS[args.kind]
    explanation = {
        "kind": args.kind,
        "schema": path,
        "resolved": bool(registry.get(path)),
        "upstream_rules": model.upstream_definition is not GatewayObject.upstream_definition,
        "plugin_dispatch": model.plugin_configs is not GatewayObject.plugin_configs,
        "hash_schemas": {name: bool(registry.get(name)) for name in (HASH_VARS_SCHEMA, HASH_HEADER_SCHEMA)},
        "plugins": registry.names(PLUGINS_SECTION),
    }
    print(json.dumps(explanation, indent=2))


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    settings = load_settings(Path(args.settings))
    configure_logging(Path(settings["logging"]["config"]))

    if args.command == "validate":
        if not cmd_validate(args, settings):
            raise SystemExit(1)
        return

    if args.command == "check":
        if not cmd_check(args):
            raise SystemExit(1)
        return

    if args.command == "explain":
        cmd_explain(args, settings)


if __name__ == "__main__":
    main()
