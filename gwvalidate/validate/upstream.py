"""Gateway rules for upstream definitions that JSON Schema cannot express."""
from __future__ import annotations

from typing import Optional

from gwvalidate.entity.models import GatewayObject, UpstreamDef
from gwvalidate.entity.nodes import format_nodes
from gwvalidate.validate.catalog import HASH_HEADER_SCHEMA, HASH_VARS_SCHEMA, SchemaCatalog
from gwvalidate.validate.errors import SemanticViolation, StructuralViolation
from gwvalidate.validate.structural import FAILED_PREFIX

HASH_ON_CHOICES = ("consumer", "vars", "header", "cookie")
DEFAULT_HASH_ON = "vars"


def _hash_key_schema(hash_on: str) -> str:
    if hash_on == "vars":
        return HASH_VARS_SCHEMA
    return HASH_HEADER_SCHEMA


def check_chash_key(upstream: UpstreamDef, catalog: SchemaCatalog) -> None:
    """Validate ``key`` against the schema selected by ``hash_on``."""
    if upstream.hash_on == "consumer":
        return
    path = _hash_key_schema(upstream.hash_on)
    errors = catalog.require(path).violations(upstream.key)
    if errors:
        raise StructuralViolation(f"{FAILED_PREFIX}key does not match {path}: " + "\n".join(errors), errors)


def check_upstream(upstream: Optional[UpstreamDef], catalog: SchemaCatalog) -> None:
    """Apply the pass-host and consistent-hashing rules to one definition.

    An empty ``hash_on`` on a ``chash`` upstream is filled in with ``vars``
    on the object itself, so the same instance must not be validated from
    two threads at once.
    """
    if upstream is None:
        return

    if upstream.pass_host == "node" and upstream.nodes is not None:
        try:
            nodes = format_nodes(upstream.nodes)
        except ValueError as exc:
            raise SemanticViolation("nodes", f"invalid nodes: {exc}") from exc
        if len(nodes) != 1:
            raise SemanticViolation("pass_host", "only a single node is supported in node pass-host mode")

    if upstream.pass_host == "rewrite" and not upstream.upstream_host:
        raise SemanticViolation("upstream_host", "upstream_host must be set when pass_host is rewrite")

    if upstream.type != "chash":
        return

    if not upstream.hash_on:
        upstream.hash_on = DEFAULT_HASH_ON

    if upstream.hash_on not in HASH_ON_CHOICES:
        raise SemanticViolation("hash_on", f"invalid hash_on type: {upstream.hash_on}")

    if upstream.hash_on != "consumer" and not upstream.key:
        raise SemanticViolation("key", "missing key")

    check_chash_key(upstream, catalog)


def check_semantics(obj: GatewayObject, catalog: SchemaCatalog) -> None:
    """Run the upstream rules for kinds that embed an upstream; others pass."""
    check_upstream(obj.upstream_definition(), catalog)
