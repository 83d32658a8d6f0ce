"""Per-plugin schema dispatch for entities carrying a plugins mapping."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from gwvalidate.validate.catalog import SchemaCatalog, plugin_schema_path
from gwvalidate.validate.errors import StructuralViolation
from gwvalidate.validate.structural import FAILED_PREFIX


def check_plugins(plugins: Optional[Mapping[str, Any]], catalog: SchemaCatalog) -> None:
    """Validate each plugin configuration against ``plugins.<name>``.

    Plugins are visited in name order and the first failing plugin is
    reported; violations within one plugin are all kept.
    """
    if not plugins:
        return
    for name in sorted(plugins):
        validator = catalog.require(plugin_schema_path(name))
        errors = validator.violations(plugins[name])
        if errors:
            raise StructuralViolation(f"{FAILED_PREFIX}plugin {name}: " + "\n".join(errors), errors)
